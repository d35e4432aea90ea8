import base64
import logging
from time import monotonic

from librium_parser.chunking.chunking import ChunkingOptions
from librium_parser.errors import LibriumError
from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook
from librium_parser.parsers.base import Book
from librium_parser.parsers.models import Metadata

from .block_ranges import DuplicatePolicy, build_section_blocks
from .chunk_assignment import build_chunk_payloads
from .outline import Section, flatten_outline
from .payloads import (
    CoverPayload,
    IdentifierPayload,
    ImagePayload,
    MetadataPayload,
    ParseResponse,
    SectionPayload,
    WarningPayload,
)
from .resources import ImageCollector

logger = logging.getLogger(__name__)


def build_parse_response(
    book: Book,
    *,
    file_name: str,
    file_size: int,
    chunking: ChunkingOptions = ChunkingOptions(),
    duplicate_policy: DuplicatePolicy = "first",
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> ParseResponse:
    """Align outline, chunk stream and block lists of one decoded book.

    Per-item failures (unresolvable targets, a failed chunking pass, a
    document without blocks, a missing image) only drop the affected items.
    """
    start = monotonic()
    sections = flatten_outline(book.toc, book.spine)
    metrics_hook.record_gauge(names.SECTIONS_COUNT, len(sections))

    chunks = build_chunk_payloads(book, sections, chunking, metrics_hook=metrics_hook)
    images = ImageCollector(book, metrics_hook=metrics_hook)
    section_blocks = build_section_blocks(
        book,
        sections,
        images,
        duplicate_policy=duplicate_policy,
        metrics_hook=metrics_hook,
    )

    message = "parsed"
    if book.warnings:
        message = "parsed with warnings: " + "; ".join(w.message for w in book.warnings)
        metrics_hook.increment(names.PARSE_WARNINGS_TOTAL, len(book.warnings))

    response = ParseResponse(
        file_name=file_name,
        file_size=file_size,
        message=message,
        sections=[section_payload(section) for section in sections],
        chunks=chunks,
        section_blocks=section_blocks or None,
        metadata=metadata_payload(book.metadata),
        warnings=[
            WarningPayload(code=w.code, message=w.message, path=w.path)
            for w in book.warnings
        ],
        cover=cover_payload(book),
        images=[
            ImagePayload(
                href=entry.href,
                content_type=entry.content_type or None,
                data=entry.data,
                width=entry.width or None,
                height=entry.height or None,
            )
            for entry in images.entries()
        ]
        or None,
    )

    elapsed_ms = 1000 * (monotonic() - start)
    logger.info(
        "Aligned %d sections, %d chunks, %d section block lists in %.1fms",
        len(sections),
        len(chunks),
        len(section_blocks),
        elapsed_ms,
    )
    return response


def section_payload(section: Section) -> SectionPayload:
    return SectionPayload(
        title=section.title,
        order_index=section.order_index,
        depth=section.depth,
        parent_order_index=section.parent_order_index,
        href=section.href or None,
        anchor=section.anchor or None,
    )


def metadata_payload(metadata: Metadata) -> MetadataPayload:
    return MetadataPayload(
        title=metadata.title,
        authors=list(metadata.authors),
        language=metadata.language,
        publisher=metadata.publisher,
        published_at=metadata.pub_date,
        series=metadata.series,
        series_index=metadata.series_index,
        subjects=[subject for subject in metadata.subjects if subject],
        identifiers=[
            IdentifierPayload(
                id=ident.id, scheme=ident.scheme, value=ident.value, type=ident.type
            )
            for ident in metadata.identifiers
        ],
    )


def cover_payload(book: Book) -> CoverPayload | None:
    try:
        cover = book.cover()
    except LibriumError as exc:
        logger.warning("Cover extraction failed: %s", exc)
        return None
    if cover is None or not cover.data:
        return None
    return CoverPayload(
        content_type=cover.content_type,
        data=base64.b64encode(cover.data).decode("ascii"),
    )
