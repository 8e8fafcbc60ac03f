"""Management CLI for the deckrag document corpus.

Usage::

    python -m deckrag.cli.ingest file --path deck.pptx
    python -m deckrag.cli.ingest directory --path ./briefs/
    python -m deckrag.cli.ingest list
    python -m deckrag.cli.ingest delete --id 3f2c... --yes
    python -m deckrag.cli.ingest search --query "brand colours" --k 3
    python -m deckrag.cli.ingest seed
    python -m deckrag.cli.ingest stats

Uses the same provider selection and storage paths as the web app, so
documents ingested here are immediately visible to the API.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from deckrag.config.settings import Settings
from deckrag.models.document import DocumentStatus


async def _build_components(app_settings: Settings) -> dict[str, Any]:
    """Assemble the application components and initialise the document store.

    Imported lazily so ``--help`` does not load provider SDKs.
    """
    from deckrag.main import _build_all

    components = _build_all(app_settings)
    await components["document_store"].initialize()
    return components


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_file(args: argparse.Namespace, components: dict[str, Any]) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"Error: not a file: {path}", file=sys.stderr)
        return 1

    service = components["ingestion_service"]
    print(f"Ingesting: {path.name}")
    if args.mime:
        document = await service.ingest(path.read_bytes(), path.name, args.mime)
    else:
        document = await service.ingest_file(path)

    print(f"  Document ID: {document.id}")
    print(f"  Status:      {document.status.value}")
    if document.status is DocumentStatus.READY:
        print(f"  Chunks:      {document.chunk_count}")
        return 0
    print(f"  Error:       {document.error_message}", file=sys.stderr)
    return 1


async def _handle_directory(args: argparse.Namespace, components: dict[str, Any]) -> int:
    from deckrag.services.ingestion.text_extractor import is_supported

    root = Path(args.path)
    if not root.is_dir():
        print(f"Error: not a directory: {root}", file=sys.stderr)
        return 1

    files = sorted(p for p in root.iterdir() if p.is_file() and is_supported(p.name))
    if not files:
        print(f"No supported files (pdf, pptx, txt, md) in {root}")
        return 0

    service = components["ingestion_service"]
    print(f"Ingesting {len(files)} files from {root}")
    ready = 0
    total_chunks = 0
    for path in files:
        document = await service.ingest_file(path)
        marker = "ok " if document.status is DocumentStatus.READY else "ERR"
        print(f"  [{marker}] {path.name} ({document.chunk_count} chunks)")
        if document.status is DocumentStatus.READY:
            ready += 1
            total_chunks += document.chunk_count
        else:
            print(f"        {document.error_message}", file=sys.stderr)

    print("\nDirectory ingestion complete:")
    print(f"  Files ready:  {ready}/{len(files)}")
    print(f"  Total chunks: {total_chunks}")
    return 0 if ready == len(files) else 1


async def _handle_list(components: dict[str, Any]) -> int:
    documents = await components["document_store"].list_documents()
    if not documents:
        print("No documents.")
        return 0

    print(f"{'ID':<36}  {'STATUS':<10}  {'CHUNKS':>6}  NAME")
    for doc in documents:
        print(f"{doc.id:<36}  {doc.status.value:<10}  {doc.chunk_count:>6}  {doc.original_name}")
    return 0


async def _handle_delete(args: argparse.Namespace, components: dict[str, Any]) -> int:
    document = await components["document_store"].get_document(args.id)
    if document is None:
        print(f"Error: document not found: {args.id}", file=sys.stderr)
        return 1

    if not args.yes:
        answer = input(f"Delete '{document.original_name}' and its {document.chunk_count} chunks? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("  Aborted.")
            return 0

    await components["ingestion_service"].delete_document(args.id)
    print(f"Deleted {document.original_name} ({args.id}).")
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    results = await components["vector_store"].search_text(args.query, args.k)
    if not results:
        print("No results.")
        return 0

    for rank, ctx in enumerate(results, start=1):
        preview = ctx.content[:200] + ("..." if len(ctx.content) > 200 else "")
        print(f"{rank}. [{ctx.score:.3f}] {ctx.filename}")
        print(f"   {preview}")
    return 0


async def _handle_seed(components: dict[str, Any]) -> int:
    from deckrag.utils.errors import SeedInProgress

    try:
        result = await components["seed_service"].seed()
    except SeedInProgress as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(f"Seeded:  {', '.join(result.seeded) or '-'}")
    print(f"Skipped: {', '.join(result.skipped) or '-'}")
    if result.failed:
        print(f"Failed:  {', '.join(result.failed)}", file=sys.stderr)
        return 1
    return 0


async def _handle_stats(components: dict[str, Any]) -> int:
    documents = await components["document_store"].list_documents()
    chunk_count = await components["vector_store"].count_chunks()
    by_status: dict[str, int] = {}
    for doc in documents:
        by_status[doc.status.value] = by_status.get(doc.status.value, 0) + 1

    registry = components["provider_registry"]
    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Documents:        {len(documents)}")
    for status, count in sorted(by_status.items()):
        print(f"    {status:<14} {count}")
    print(f"  Chunks:           {chunk_count}")
    print(f"  Embedding:        {registry['embedding_provider']}")
    print(f"  LLM:              {registry['llm_provider']}")
    print(f"  Vector index:     {'enabled' if registry['vector_index'] else 'disabled (brute force)'}")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deckrag-ingest",
        description="Manage the deckrag document corpus.",
    )
    subparsers = parser.add_subparsers(dest="command")

    file_parser = subparsers.add_parser("file", help="Ingest one file")
    file_parser.add_argument("--path", required=True, help="Path to a PDF, PPTX, TXT or MD file")
    file_parser.add_argument("--mime", default="", help="Override the MIME type guessed from the extension")

    dir_parser = subparsers.add_parser("directory", help="Ingest every supported file in a directory")
    dir_parser.add_argument("--path", required=True, help="Directory to scan (not recursive)")

    subparsers.add_parser("list", help="List documents, newest first")

    delete_parser = subparsers.add_parser("delete", help="Delete a document and its chunks")
    delete_parser.add_argument("--id", required=True, help="Document ID")
    delete_parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    search_parser = subparsers.add_parser("search", help="Semantic search over the corpus")
    search_parser.add_argument("--query", required=True, help="Search text")
    search_parser.add_argument("--k", type=int, default=5, help="Number of results (default 5)")

    subparsers.add_parser("seed", help="Ingest the bundled sample documents")
    subparsers.add_parser("stats", help="Show corpus statistics")

    return parser


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    components = await _build_components(app_settings)

    if args.command == "file":
        return await _handle_file(args, components)
    if args.command == "directory":
        return await _handle_directory(args, components)
    if args.command == "list":
        return await _handle_list(components)
    if args.command == "delete":
        return await _handle_delete(args, components)
    if args.command == "search":
        return await _handle_search(args, components)
    if args.command == "seed":
        return await _handle_seed(components)
    if args.command == "stats":
        return await _handle_stats(components)
    return 1


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand, build the app components, dispatch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    exit_code = asyncio.run(_run(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
