"""Anchor resolution: sections to positions in chunk and block space.

Both coordinate spaces share the same idea. A section's target reference is
resolved to a position in a linear sequence, and everything from that
position up to the next anchor belongs to the section.
"""

import bisect
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from librium_parser.chunking.chunking import Chunk, ChunkingOptions
from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook
from librium_parser.parsers.base import Book

from .outline import Section

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkAnchor:
    section_order_index: int
    chunk_index: int


@dataclass(frozen=True)
class SectionTarget:
    section_order_index: int
    document_index: int
    block_index: int
    base_href: str


class AnchorSet:
    """Sorted association list of chunk positions to sections.

    Anchors may be added in any order. Lookups return the section whose
    anchor is the nearest at or before a position; on equal positions the
    anchor added first wins.
    """

    def __init__(self) -> None:
        self._anchors: list[ChunkAnchor] = []
        self._keys: list[tuple[int, int]] = []  # (chunk_index, insertion order)

    def add(self, section_order_index: int, chunk_index: int) -> None:
        key = (chunk_index, len(self._anchors))
        self._anchors.append(ChunkAnchor(section_order_index, chunk_index))
        bisect.insort(self._keys, key)

    def owner_at(self, chunk_index: int) -> int | None:
        """Section owning ``chunk_index``, or None when the set is empty.

        Positions before every anchor belong to the first anchor added.
        """
        if not self._anchors:
            return None
        after = bisect.bisect_right(self._keys, (chunk_index, len(self._anchors)))
        if after == 0:
            return self._anchors[0].section_order_index
        nearest = self._keys[after - 1][0]
        first_at_nearest = bisect.bisect_left(self._keys, (nearest, -1))
        _, order = self._keys[first_at_nearest]
        return self._anchors[order].section_order_index

    def __len__(self) -> int:
        return len(self._anchors)

    def __iter__(self) -> Iterator[ChunkAnchor]:
        return iter(self._anchors)


def resolve_chunk_anchors(
    book: Book,
    sections: Sequence[Section],
    chunks: Sequence[Chunk],
    *,
    options: ChunkingOptions | None = None,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> AnchorSet:
    """Anchor every resolvable section at its chunk in ``chunks``.

    ``options`` must be the options ``chunks`` was produced with.
    """
    chunk_index_by_id = {chunk.chunk_id: i for i, chunk in enumerate(chunks)}
    anchors = AnchorSet()
    unresolved = 0

    for section in sections:
        if not section.target_ref:
            continue
        ref = book.resolve_anchor(section.target_ref, options)
        if ref is None:
            logger.debug(
                "Section %d target %r did not resolve",
                section.order_index,
                section.target_ref,
            )
            unresolved += 1
            continue
        chunk_index = chunk_index_by_id.get(ref.chunk_id)
        if chunk_index is None:
            logger.debug(
                "Section %d resolved to unknown chunk %r",
                section.order_index,
                ref.chunk_id,
            )
            unresolved += 1
            continue
        anchors.add(section.order_index, chunk_index)

    metrics_hook.increment(names.ANCHORS_RESOLVED_TOTAL, len(anchors))
    metrics_hook.increment(names.ANCHORS_UNRESOLVED_TOTAL, unresolved)

    if not anchors and sections:
        logger.info("No section resolved to a chunk, anchoring all chunks to section 0")
        metrics_hook.increment(names.ANCHORS_FALLBACK_TOTAL)
        anchors.add(0, 0)
    return anchors


def resolve_block_targets(
    book: Book,
    sections: Sequence[Section],
) -> list[SectionTarget]:
    spine_index_by_href = {item.href: i for i, item in enumerate(book.spine)}
    targets: list[SectionTarget] = []

    for section in sections:
        if section.target_ref:
            ref = book.resolve_anchor(section.target_ref)
            if ref is not None:
                base_href = ""
                if 0 <= ref.document_index < len(book.spine):
                    base_href = book.spine[ref.document_index].href
                targets.append(
                    SectionTarget(
                        section_order_index=section.order_index,
                        document_index=ref.document_index,
                        block_index=ref.block_index,
                        base_href=base_href,
                    )
                )
                continue

        # Coarse fallback: start of the named document
        document_index = spine_index_by_href.get(section.href) if section.href else None
        if document_index is not None:
            targets.append(
                SectionTarget(
                    section_order_index=section.order_index,
                    document_index=document_index,
                    block_index=0,
                    base_href=section.href,
                )
            )
        else:
            logger.debug("Section %d has no block target", section.order_index)

    return targets


def group_targets_by_document(
    targets: Sequence[SectionTarget],
) -> dict[int, list[SectionTarget]]:
    grouped: dict[int, list[SectionTarget]] = {}
    for target in targets:
        grouped.setdefault(target.document_index, []).append(target)
    return grouped
