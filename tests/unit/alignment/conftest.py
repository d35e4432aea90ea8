import io
from collections import Counter
from collections.abc import Callable
from typing import BinaryIO

import pytest
from PIL import Image

from librium_parser.chunking.chunking import Chunk, ChunkingOptions
from librium_parser.errors import BlockLoadError, ChunkingError, ResourceNotFoundError
from librium_parser.parsers.models import (
    AnchorRef,
    Block,
    BlockKind,
    Cover,
    Inline,
    InlineKind,
    Metadata,
    ParseWarning,
    SpineItem,
    TocItem,
)


class FakeBook:
    """In-memory Book with injectable failures."""

    def __init__(
        self,
        *,
        spine: list[str],
        toc: list[TocItem] | None = None,
        anchors: dict[str, AnchorRef] | None = None,
        chunks: list[Chunk] | None = None,
        documents: dict[int, list[Block]] | None = None,
        resources: dict[str, bytes] | None = None,
        failing_documents: set[int] | None = None,
        chunking_fails: bool = False,
        metadata: Metadata | None = None,
        warnings: list[ParseWarning] | None = None,
        cover: Cover | None = None,
    ) -> None:
        self.spine = [SpineItem(idref=f"doc{i}", href=href) for i, href in enumerate(spine)]
        self.toc = toc or []
        self.metadata = metadata or Metadata()
        self.warnings = warnings or []
        self._anchors = anchors or {}
        self._chunks = chunks or []
        self._documents = documents or {}
        self._resources = resources or {}
        self._failing = failing_documents or set()
        self._chunking_fails = chunking_fails
        self._cover = cover
        self.block_calls: Counter[int] = Counter()
        self.resource_opens: Counter[str] = Counter()
        self.anchor_options: list[ChunkingOptions | None] = []

    def resolve_anchor(
        self, target: str, options: ChunkingOptions | None = None
    ) -> AnchorRef | None:
        self.anchor_options.append(options)
        return self._anchors.get(target)

    def chunks(self, options: ChunkingOptions) -> list[Chunk]:
        if self._chunking_fails:
            raise ChunkingError("chunker unavailable")
        return list(self._chunks)

    def blocks(self, document_index: int) -> list[Block]:
        self.block_calls[document_index] += 1
        if document_index in self._failing:
            raise BlockLoadError(document_index, "injected failure")
        return list(self._documents.get(document_index, []))

    def open_resource(self, href: str) -> BinaryIO:
        self.resource_opens[href] += 1
        if href not in self._resources:
            raise ResourceNotFoundError(href)
        return io.BytesIO(self._resources[href])

    def cover(self) -> Cover | None:
        return self._cover

    def close(self) -> None:
        pass


def make_chunks(*texts: str) -> list[Chunk]:
    chunks = []
    offset = 0
    for text in texts:
        end = offset + len(text)
        chunks.append(
            Chunk(
                chunk_id=f"book:{offset}:{end}",
                text=text,
                offset_start=offset,
                offset_end=end,
                metadata={"source_id": "book"},
            )
        )
        offset = end
    return chunks


def paragraphs(*texts: str) -> list[Block]:
    return [
        Block(kind=BlockKind.PARAGRAPH, inlines=[Inline(kind=InlineKind.TEXT, text=t)])
        for t in texts
    ]


def png_bytes(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_book() -> Callable[..., FakeBook]:
    return FakeBook


@pytest.fixture
def chunk_factory() -> Callable[..., list[Chunk]]:
    return make_chunks


@pytest.fixture
def paragraph_factory() -> Callable[..., list[Block]]:
    return paragraphs


@pytest.fixture
def png_factory() -> Callable[[int, int], bytes]:
    return png_bytes
