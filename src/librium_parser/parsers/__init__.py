from .base import Book, DocumentParser
from .config import ParserConfig
from .epub_parser import EpubBook, EpubParser
from .models import (
    AnchorRef,
    Block,
    BlockKind,
    Cover,
    Figure,
    Identifier,
    Inline,
    InlineKind,
    Metadata,
    ParseWarning,
    SpineItem,
    Table,
    TableCell,
    TableRow,
    TocItem,
    TocTarget,
)

__all__ = [
    "AnchorRef",
    "Block",
    "BlockKind",
    "Book",
    "Cover",
    "DocumentParser",
    "EpubBook",
    "EpubParser",
    "Figure",
    "Identifier",
    "Inline",
    "InlineKind",
    "Metadata",
    "ParseWarning",
    "ParserConfig",
    "SpineItem",
    "Table",
    "TableCell",
    "TableRow",
    "TocItem",
    "TocTarget",
]
