# parsers/base.py

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Protocol

from librium_parser.chunking.chunking import Chunk, ChunkingOptions

from .models import AnchorRef, Block, Cover, Metadata, ParseWarning, SpineItem, TocItem


class Book(Protocol):
    """Decoded e-book as seen by the alignment engine.

    Everything the engine needs from the container goes through these
    members, so any decoder (or an in-memory fake) can stand behind it.
    """

    toc: list[TocItem]
    spine: list[SpineItem]
    metadata: Metadata
    warnings: list[ParseWarning]

    def resolve_anchor(
        self, target: str, options: ChunkingOptions | None = None
    ) -> AnchorRef | None:
        """Locate ``href#fragment`` in the reading order, or return None.

        ``chunk_id`` names a chunk of ``chunks(options)``; without options
        the book's own chunking configuration is used.
        """
        ...

    def chunks(self, options: ChunkingOptions) -> list[Chunk]:
        """Split the concatenated content stream. Raises ChunkingError."""
        ...

    def blocks(self, document_index: int) -> list[Block]:
        """Blocks of one spine document. Raises BlockLoadError."""
        ...

    def open_resource(self, href: str) -> BinaryIO:
        """Raw bytes of a manifest resource. Raises ResourceNotFoundError."""
        ...

    def cover(self) -> Cover | None: ...

    def close(self) -> None: ...


class DocumentParser(ABC):
    @abstractmethod
    def parse(self, source: str | Path | BinaryIO) -> Book:
        """
        Parse a container and return a decoded book.

        Requirements:
        - Deterministic output for same input
        - Recoverable problems are reported through ``Book.warnings``
        - Unusable input raises ParseFatalError
        """
        raise NotImplementedError
