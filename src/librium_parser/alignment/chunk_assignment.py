import logging
from collections.abc import Sequence

from librium_parser.chunking.chunking import Chunk, ChunkingOptions, count_words
from librium_parser.errors import LibriumError
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook
from librium_parser.parsers.base import Book

from .anchors import AnchorSet, resolve_chunk_anchors
from .outline import Section
from .payloads import ChunkPayload

logger = logging.getLogger(__name__)


def assign_chunks(chunks: Sequence[Chunk], anchors: AnchorSet) -> list[ChunkPayload]:
    """Give every chunk an owning section and a section-local index.

    The owner of chunk ``i`` is the section anchored nearest at or before
    ``i``. Local indexes count up from 0 per section in stream order.
    """
    counters: dict[int, int] = {}
    payloads = []
    for i, chunk in enumerate(chunks):
        owner = anchors.owner_at(i)
        if owner is None:
            owner = 0
        local_index = counters.get(owner, 0)
        counters[owner] = local_index + 1
        payloads.append(
            ChunkPayload(
                section_order_index=owner,
                chunk_index=local_index,
                start_offset=chunk.offset_start,
                end_offset=chunk.offset_end,
                word_count=count_words(chunk.text),
                content=chunk.text,
            )
        )
    return payloads


def build_chunk_payloads(
    book: Book,
    sections: Sequence[Section],
    options: ChunkingOptions,
    *,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[ChunkPayload]:
    try:
        chunks = book.chunks(options)
    except LibriumError as exc:
        logger.warning("Chunking failed, responding without chunks: %s", exc)
        return []

    anchors = resolve_chunk_anchors(
        book, sections, chunks, options=options, metrics_hook=metrics_hook
    )
    logger.debug("Assigning %d chunks over %d anchors", len(chunks), len(anchors))
    return assign_chunks(chunks, anchors)
