"""Sample-data seeding for a fresh installation.

Ingests a few bundled Markdown documents so the chat endpoint has
something to answer from before the user uploads anything.  Seeding is
guarded by a TTL lease row in the document store rather than a
process-local flag, so two workers (or two server instances sharing the
database) cannot seed at the same time.  A lease left behind by a crashed
worker expires after ``lease_ttl_seconds`` and can then be taken over.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog

from deckrag.interfaces.document_store import IDocumentStore
from deckrag.models.document import DocumentStatus
from deckrag.services.ingestion.ingestion_service import IngestionService
from deckrag.services.ingestion.text_extractor import MARKDOWN_MIME
from deckrag.utils.errors import SeedInProgress

logger = structlog.get_logger(logger_name=__name__)

SEED_LEASE_NAME = "seed_sample_data"


@dataclass(frozen=True)
class SampleDocument:
    filename: str
    text: str


@dataclass(frozen=True)
class SeedResult:
    seeded: list[str]
    skipped: list[str]
    failed: list[str]


SAMPLE_DOCUMENTS: tuple[SampleDocument, ...] = (
    SampleDocument(
        filename="agency-capabilities.md",
        text=(
            "# Leave a Mark: Agency Capabilities\n\n"
            "Leave a Mark is a presentation agency. We design pitch decks, "
            "investor presentations, sales enablement decks and keynote talks. "
            "Every engagement starts with a discovery workshop where we map the "
            "audience, the single message they must remember and the decision we "
            "want them to make.\n\n"
            "## Services\n\n"
            "Story development turns raw material into a narrative arc. "
            "Visual design builds a slide system with master layouts, icon sets "
            "and chart styles. Speaker coaching rehearses delivery, timing and "
            "handling of hard questions. Template production delivers editable "
            "PowerPoint and Keynote masters for in-house teams.\n\n"
            "## Turnaround\n\n"
            "A ten-slide pitch deck typically takes five working days. "
            "Rush delivery in 48 hours is available for decks under fifteen slides."
        ),
    ),
    SampleDocument(
        filename="presentation-guidelines.md",
        text=(
            "# Presentation Guidelines\n\n"
            "One idea per slide. If a slide needs two headlines, it is two slides. "
            "Headlines state the takeaway as a full sentence rather than a topic label. "
            "Body text stays under thirty words per slide; details belong in the "
            "speaker notes or an appendix.\n\n"
            "## Data\n\n"
            "Charts show one comparison each. Highlight the bar or line that carries "
            "the message and mute everything else. Always label units and sources.\n\n"
            "## Structure\n\n"
            "Open with the problem, not the company history. Close with a single, "
            "specific ask. Keep the main deck under twenty slides and move supporting "
            "material to the appendix."
        ),
    ),
    SampleDocument(
        filename="brand-voice.md",
        text=(
            "# Brand Voice\n\n"
            "Our voice is confident, plain and warm. We write the way a trusted "
            "advisor speaks: short sentences, active verbs and no jargon. "
            "We avoid superlatives we cannot prove.\n\n"
            "## Typography and colour\n\n"
            "Headlines use a geometric sans serif at a minimum of 28 points. "
            "Body copy never drops below 18 points on a projected slide. "
            "The primary palette is ink black, paper white and a single signal "
            "colour used only for emphasis."
        ),
    ),
)


class SeedService:
    """Ingests :data:`SAMPLE_DOCUMENTS` once, under a store-backed lease.

    Samples whose filename already exists as a document are skipped, so
    running the seed twice is harmless.
    """

    def __init__(
        self,
        ingestion_service: IngestionService,
        document_store: IDocumentStore,
        lease_ttl_seconds: float = 300,
        samples: tuple[SampleDocument, ...] = SAMPLE_DOCUMENTS,
    ) -> None:
        self._ingestion = ingestion_service
        self._document_store = document_store
        self._lease_ttl_seconds = lease_ttl_seconds
        self._samples = samples

    async def seed(self) -> SeedResult:
        """Ingest every missing sample document.

        Raises
        ------
        SeedInProgress
            If another worker currently holds the seed lease.
        """
        holder = str(uuid.uuid4())
        acquired = await self._document_store.acquire_lease(
            SEED_LEASE_NAME, holder, self._lease_ttl_seconds
        )
        if not acquired:
            logger.warning("seed_already_running", lease=SEED_LEASE_NAME)
            raise SeedInProgress()

        seeded: list[str] = []
        skipped: list[str] = []
        failed: list[str] = []
        try:
            existing = {d.original_name for d in await self._document_store.list_documents()}
            for sample in self._samples:
                if sample.filename in existing:
                    skipped.append(sample.filename)
                    continue
                document = await self._ingestion.ingest(
                    sample.text.encode("utf-8"), sample.filename, MARKDOWN_MIME
                )
                if document.status is DocumentStatus.READY:
                    seeded.append(sample.filename)
                else:
                    failed.append(sample.filename)
        finally:
            await self._document_store.release_lease(SEED_LEASE_NAME, holder)

        logger.info("seed_complete", seeded=len(seeded), skipped=len(skipped), failed=len(failed))
        return SeedResult(seeded=seeded, skipped=skipped, failed=failed)
