# parsers/models.py

from dataclasses import dataclass, field
from enum import Enum


class BlockKind(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    PRE = "pre"
    HR = "hr"
    TABLE = "table"
    FIGURE = "figure"


class InlineKind(str, Enum):
    TEXT = "text"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    LINK = "link"
    IMAGE = "image"
    CODE = "code"


@dataclass(frozen=True)
class Inline:
    kind: InlineKind | str
    text: str = ""
    href: str = ""
    src: str = ""
    alt: str = ""
    emph: bool = False
    strong: bool = False


@dataclass(frozen=True)
class TableCell:
    inlines: list[Inline]
    header: bool = False


@dataclass(frozen=True)
class TableRow:
    cells: list[TableCell]


@dataclass(frozen=True)
class Table:
    rows: list[TableRow]


@dataclass(frozen=True)
class Figure:
    images: list[Inline]
    caption: list[Inline]


@dataclass(frozen=True)
class Block:
    """One structural unit of a spine document, in document order."""

    kind: BlockKind | str
    inlines: list[Inline] = field(default_factory=list)
    anchors: list[str] = field(default_factory=list)
    level: int = 0
    ordered: bool = False
    list_index: int = 0
    table: Table | None = None
    figure: Figure | None = None

    def plain_text(self) -> str:
        parts = [inline.text for inline in self.inlines]
        if self.table is not None:
            for row in self.table.rows:
                parts.append(
                    " ".join(
                        "".join(inline.text for inline in cell.inlines)
                        for cell in row.cells
                    )
                )
        if self.figure is not None:
            parts.extend(inline.text for inline in self.figure.caption)
        return "".join(parts).strip()


@dataclass(frozen=True)
class TocTarget:
    href: str


@dataclass(frozen=True)
class TocItem:
    label: str
    href: str = ""
    target: TocTarget | None = None
    children: list["TocItem"] = field(default_factory=list)


@dataclass(frozen=True)
class SpineItem:
    idref: str
    href: str
    media_type: str = "application/xhtml+xml"
    linear: bool = True


@dataclass(frozen=True)
class AnchorRef:
    """Where a target reference lands: document, block and owning chunk."""

    document_index: int
    block_index: int
    chunk_id: str = ""


@dataclass(frozen=True)
class Identifier:
    id: str = ""
    scheme: str = ""
    value: str = ""
    type: str = ""


@dataclass(frozen=True)
class Metadata:
    title: str = ""
    authors: list[str] = field(default_factory=list)
    language: str = ""
    publisher: str = ""
    pub_date: str = ""
    series: str = ""
    series_index: str = ""
    subjects: list[str] = field(default_factory=list)
    identifiers: list[Identifier] = field(default_factory=list)


@dataclass(frozen=True)
class ParseWarning:
    code: str
    message: str
    path: str = ""


@dataclass(frozen=True)
class Cover:
    content_type: str
    data: bytes
    href: str = ""
