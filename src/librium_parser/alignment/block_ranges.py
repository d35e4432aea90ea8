"""Section-scoped slices of each document's block list.

A document's blocks are one linear sequence. Sections landing inside it are
known only as offsets, so the list is partitioned at the sorted offsets; the
outline hierarchy plays no part here.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from librium_parser.errors import LibriumError
from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook
from librium_parser.parsers.base import Book

from .anchors import SectionTarget, group_targets_by_document, resolve_block_targets
from .converters import convert_block
from .outline import Section
from .payloads import BlockPayload, SectionBlocksPayload
from .resources import ImageCollector

logger = logging.getLogger(__name__)

# "first": of several sections starting at one block, the lowest order index
# gets the slice and the others get nothing. "duplicate": all get the slice.
DuplicatePolicy = Literal["first", "duplicate"]


@dataclass(frozen=True)
class BlockRange:
    target: SectionTarget
    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


def partition_block_ranges(
    targets: Sequence[SectionTarget],
    block_count: int,
    *,
    duplicate_policy: DuplicatePolicy = "first",
) -> list[BlockRange]:
    if duplicate_policy not in ("first", "duplicate"):
        raise ValueError(f"Unknown duplicate policy: {duplicate_policy}")

    ordered = sorted(targets, key=lambda t: (t.block_index, t.section_order_index))
    ranges = []
    previous_start: int | None = None
    for i, target in enumerate(ordered):
        start = _clamp(target.block_index, block_count)
        end = block_count
        for following in ordered[i + 1 :]:
            if following.block_index > start:
                end = min(following.block_index, block_count)
                break
        if duplicate_policy == "first" and start == previous_start:
            end = start
        ranges.append(BlockRange(target=target, start=start, end=max(end, start)))
        previous_start = start
    return ranges


def build_section_blocks(
    book: Book,
    sections: Sequence[Section],
    images: ImageCollector,
    *,
    duplicate_policy: DuplicatePolicy = "first",
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[SectionBlocksPayload]:
    targets = resolve_block_targets(book, sections)
    if not targets:
        return []

    section_blocks: dict[int, list[BlockPayload]] = {}
    for document_index, document_targets in sorted(
        group_targets_by_document(targets).items()
    ):
        try:
            blocks = book.blocks(document_index)
        except LibriumError as exc:
            logger.warning("Skipping blocks of document %d: %s", document_index, exc)
            metrics_hook.increment(names.BLOCK_DOCUMENTS_FAILED_TOTAL)
            continue

        for block_range in partition_block_ranges(
            document_targets, len(blocks), duplicate_policy=duplicate_policy
        ):
            if block_range.is_empty:
                continue
            base_href = block_range.target.base_href
            section_blocks[block_range.target.section_order_index] = [
                convert_block(block, base_href, images)
                for block in blocks[block_range.start : block_range.end]
            ]

    payloads = [
        SectionBlocksPayload(
            section_order_index=section.order_index,
            blocks=section_blocks[section.order_index],
        )
        for section in sections
        if section.order_index in section_blocks
    ]
    metrics_hook.record_gauge(names.SECTION_BLOCKS_COUNT, len(payloads))
    return payloads


def _clamp(value: int, upper: int) -> int:
    return min(max(value, 0), upper)
