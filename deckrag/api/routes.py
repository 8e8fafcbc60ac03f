"""FastAPI routes for document management and RAG chat.

Service dependencies are resolved from ``app.state`` (populated by
``deckrag.main._build_all``) through ``Depends`` with ``Annotated`` aliases.

Endpoint                                Method  Description
--------------------------------------  ------  ------------------------------------------
/api/v1/documents                       POST    Upload a file, ingest it in the background
/api/v1/documents                       GET     List documents, newest first
/api/v1/documents/{id}                  GET     One document's status
/api/v1/documents/{id}                  DELETE  Delete a document and its chunks
/api/v1/documents/{id}/download         GET     Original uploaded bytes
/api/v1/chat                            POST    Streamed RAG answer (Server-Sent Events)
/api/v1/seed                            POST    Ingest the bundled sample documents
/api/v1/health                          GET     Health check + provider status
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated, Any
from urllib.parse import quote

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, UploadFile
from fastapi.responses import Response, StreamingResponse

from deckrag.api.schemas import (
    ChatRequest,
    DeleteDocumentResponse,
    ErrorResponse,
    HealthResponse,
    SeedResponse,
)
from deckrag.interfaces.document_store import IDocumentStore
from deckrag.models.chat import ChatEvent, ChatEventType
from deckrag.models.document import Document
from deckrag.services.chat_service import ChatService
from deckrag.services.ingestion.ingestion_service import IngestionService
from deckrag.services.ingestion.text_extractor import SUPPORTED_EXTENSIONS, is_supported
from deckrag.services.seed_service import SeedService
from deckrag.utils.errors import SeedInProgress, UnsupportedFileType
from deckrag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_DEFAULT_MAX_UPLOAD_BYTES = 25 * 1024 * 1024

# Uploads are read in 64 KB increments so oversized files are rejected
# before the whole payload is buffered.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_document_store(request: Request) -> IDocumentStore:
    return request.app.state.document_store


def _get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _get_seed_service(request: Request) -> SeedService:
    return request.app.state.seed_service


def _get_max_upload_bytes(request: Request) -> int:
    return getattr(request.app.state, "max_upload_bytes", _DEFAULT_MAX_UPLOAD_BYTES)


IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
DocumentStoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]
ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]
SeedServiceDep = Annotated[SeedService, Depends(_get_seed_service)]
MaxUploadDep = Annotated[int, Depends(_get_max_upload_bytes)]


# ---------------------------------------------------------------------------
# SSE framing
# ---------------------------------------------------------------------------


def format_sse(event: ChatEvent) -> str:
    """Serialize *event* as one Server-Sent-Events frame.

    Multi-line payloads become one ``data:`` line per line so clients
    reassemble them with the original newlines.
    """
    data_lines = "".join(f"data: {line}\n" for line in event.data.split("\n"))
    return f"event: {event.type.value}\n{data_lines}\n"


# ---------------------------------------------------------------------------
# Document endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=Document,
    status_code=201,
    responses={413: {"model": ErrorResponse}, 415: {"model": ErrorResponse}},
    summary="Upload a document for ingestion",
)
async def upload_document(
    file: UploadFile,
    background_tasks: BackgroundTasks,
    ingestion: IngestionDep,
    max_upload_bytes: MaxUploadDep,
) -> Document:
    """Store the upload, create a ``processing`` document and ingest it in the background."""
    filename = file.filename or ""
    content_type = file.content_type or ""
    if not filename:
        raise HTTPException(status_code=400, detail="No file provided")
    if not is_supported(filename, content_type):
        raise HTTPException(
            status_code=415,
            detail=(
                f"Unsupported file type: {content_type or filename}. "
                f"Allowed: {', '.join(sorted(e.lstrip('.').upper() for e in SUPPORTED_EXTENSIONS))}"
            ),
        )

    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum: {max_upload_bytes} bytes.",
            )
        chunks.append(chunk)
    data = b"".join(chunks)
    del chunks

    try:
        document = await ingestion.register_upload(data, filename, content_type)
    except UnsupportedFileType as exc:
        raise HTTPException(status_code=415, detail=exc.message) from exc

    _logger.info(
        "document_uploaded",
        document_id=document.id,
        filename=filename,
        mime_type=document.mime_type,
        file_size=total_size,
    )
    background_tasks.add_task(ingestion.process_document, document, data)
    return document


@router.get(
    "/documents",
    response_model=list[Document],
    summary="List uploaded documents",
)
async def list_documents(document_store: DocumentStoreDep) -> list[Document]:
    return await document_store.list_documents()


@router.get(
    "/documents/{document_id}",
    response_model=Document,
    responses={404: {"model": ErrorResponse}},
    summary="Get one document",
)
async def get_document(document_id: str, document_store: DocumentStoreDep) -> Document:
    document = await document_store.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return document


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a document and its chunks",
)
async def delete_document(document_id: str, ingestion: IngestionDep) -> DeleteDocumentResponse:
    deleted = await ingestion.delete_document(document_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return DeleteDocumentResponse(success=True)


@router.get(
    "/documents/{document_id}/download",
    responses={404: {"model": ErrorResponse}},
    summary="Download the original upload",
)
async def download_document(document_id: str, document_store: DocumentStoreDep) -> Response:
    upload = await document_store.get_upload(document_id)
    if upload is None:
        raise HTTPException(status_code=404, detail=f"No stored upload for document: {document_id}")
    return Response(
        content=upload.data,
        media_type=upload.mime_type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(upload.filename)}",
        },
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    responses={400: {"model": ErrorResponse}},
    summary="Ask a question about the uploaded documents (SSE stream)",
)
async def chat(body: ChatRequest, chat_service: ChatServiceDep) -> StreamingResponse:
    """Stream ``sources``, ``token``, ``done`` and ``error`` events."""
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    async def event_generator() -> AsyncIterator[str]:
        try:
            async for event in chat_service.stream_answer(body.message, body.history):
                yield format_sse(event)
        except Exception as exc:  # noqa: BLE001
            _logger.error("chat_stream_error", error_type=type(exc).__name__, error=str(exc))
            yield format_sse(
                ChatEvent(
                    type=ChatEventType.ERROR,
                    data="An error occurred while generating the response",
                )
            )
            yield format_sse(ChatEvent(type=ChatEventType.DONE))

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/seed",
    response_model=SeedResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Ingest the bundled sample documents",
)
async def seed_sample_data(seed_service: SeedServiceDep) -> SeedResponse:
    try:
        result = await seed_service.seed()
    except SeedInProgress as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    return SeedResponse(seeded=result.seeded, skipped=result.skipped, failed=result.failed)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, provider availability and chunk count."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    chunk_count = 0
    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        chunk_count = await vector_store.count_chunks()

    critical_ok = bool(providers.get("llm")) and bool(providers.get("embedding"))
    return HealthResponse(
        status="healthy" if critical_ok else "degraded",
        version=request.app.version,
        providers=providers,
        chunk_count=chunk_count,
    )
