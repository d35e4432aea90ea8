from collections.abc import Sequence
from dataclasses import dataclass
from time import monotonic
from typing import Literal

from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook

ChunkMode = Literal["size", "document"]


@dataclass(frozen=True)
class ChunkingOptions:
    """How the content stream is split.

    - "size": pack whole blocks of one document up to ``max_chars``
    - "document": one chunk per spine document
    Oversize spans are cut into ``max_chars`` windows in both modes.
    """

    mode: ChunkMode = "size"
    max_chars: int = 2000


@dataclass(frozen=True)
class Chunk:
    chunk_id: str
    text: str
    offset_start: int
    offset_end: int
    metadata: dict


@dataclass(frozen=True)
class ContentUnit:
    """Text of one block, placed in the concatenated content stream."""

    text: str
    offset_start: int
    document_index: int
    block_index: int

    @property
    def offset_end(self) -> int:
        return self.offset_start + len(self.text)


def build_content_stream(
    documents: Sequence[Sequence[str]],
) -> tuple[str, list[ContentUnit]]:
    """Concatenate per-document block texts, one block per line.

    ``documents[i]`` holds the block texts of spine document ``i``.
    """
    parts: list[str] = []
    units: list[ContentUnit] = []
    offset = 0
    for document_index, texts in enumerate(documents):
        for block_index, text in enumerate(texts):
            units.append(
                ContentUnit(
                    text=text,
                    offset_start=offset,
                    document_index=document_index,
                    block_index=block_index,
                )
            )
            parts.append(text)
            parts.append("\n")
            offset += len(text) + 1
    return "".join(parts), units


def chunk_stream(
    stream: str,
    units: Sequence[ContentUnit],
    *,
    options: ChunkingOptions,
    metadata: dict,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[Chunk]:
    start = monotonic()
    if options.max_chars <= 0:
        raise ValueError("max_chars must be > 0")
    if options.mode == "size":
        spans = _pack_by_size(units, options.max_chars)
    elif options.mode == "document":
        spans = _pack_by_document(units, options.max_chars)
    else:
        raise ValueError(f"Unknown chunking mode: {options.mode}")

    chunks = []
    for span_start, span_end, document_index in spans:
        chunk_id = f"{metadata.get('source_id', 'unknown')}:{span_start}:{span_end}"
        chunk_metadata = dict(metadata)
        chunk_metadata["document_index"] = document_index
        chunks.append(
            Chunk(
                chunk_id=chunk_id,
                text=stream[span_start:span_end],
                offset_start=span_start,
                offset_end=span_end,
                metadata=chunk_metadata,
            )
        )

    elapsed_ms = 1000 * (monotonic() - start)
    metrics_hook.record_latency(names.CHUNKING_DURATION, elapsed_ms)
    metrics_hook.increment(names.CHUNKING_CHUNKS_CREATED, len(chunks))
    return chunks


def count_words(text: str) -> int:
    return len(text.split())


def _windows(start: int, end: int, max_chars: int) -> list[tuple[int, int]]:
    return [
        (window, min(window + max_chars, end))
        for window in range(start, end, max_chars)
    ]


def _pack_by_size(
    units: Sequence[ContentUnit], max_chars: int
) -> list[tuple[int, int, int]]:
    spans: list[tuple[int, int, int]] = []
    current: tuple[int, int, int] | None = None  # (start, end, document_index)

    for unit in units:
        if not unit.text:
            continue
        if current is not None:
            cur_start, _, cur_doc = current
            if (
                unit.document_index != cur_doc
                or unit.offset_end - cur_start > max_chars
            ):
                spans.append(current)
                current = None

        if current is None:
            if len(unit.text) > max_chars:
                spans.extend(
                    (s, e, unit.document_index)
                    for s, e in _windows(unit.offset_start, unit.offset_end, max_chars)
                )
                continue
            current = (unit.offset_start, unit.offset_end, unit.document_index)
        else:
            current = (current[0], unit.offset_end, current[2])

    if current is not None:
        spans.append(current)
    return spans


def _pack_by_document(
    units: Sequence[ContentUnit], max_chars: int
) -> list[tuple[int, int, int]]:
    bounds: dict[int, tuple[int, int]] = {}
    for unit in units:
        if not unit.text:
            continue
        if unit.document_index in bounds:
            first, _ = bounds[unit.document_index]
            bounds[unit.document_index] = (first, unit.offset_end)
        else:
            bounds[unit.document_index] = (unit.offset_start, unit.offset_end)

    spans: list[tuple[int, int, int]] = []
    for document_index in sorted(bounds):
        first, last = bounds[document_index]
        spans.extend((s, e, document_index) for s, e in _windows(first, last, max_chars))
    return spans
