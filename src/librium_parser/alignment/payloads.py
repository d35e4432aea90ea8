"""Wire models for the parse response.

Field names are snake_case in Python and camelCase on the wire. Optional
fields are None when they carry a zero value and are dropped on dump.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SectionPayload(WireModel):
    title: str
    order_index: int
    depth: int
    parent_order_index: int | None = None
    href: str | None = None
    anchor: str | None = None


class ChunkPayload(WireModel):
    section_order_index: int
    chunk_index: int
    start_offset: int
    end_offset: int
    word_count: int
    content: str


class InlinePayload(WireModel):
    kind: str
    text: str | None = None
    href: str | None = None
    src: str | None = None
    alt: str | None = None
    width: int | None = None
    height: int | None = None
    emph: bool | None = None
    strong: bool | None = None


class TableCellPayload(WireModel):
    inlines: list[InlinePayload]
    header: bool | None = None


class TableRowPayload(WireModel):
    cells: list[TableCellPayload]


class TablePayload(WireModel):
    rows: list[TableRowPayload]


class FigurePayload(WireModel):
    images: list[InlinePayload]
    caption: list[InlinePayload]


class BlockPayload(WireModel):
    kind: str
    level: int | None = None
    ordered: bool | None = None
    list_index: int | None = None
    inlines: list[InlinePayload] | None = None
    table: TablePayload | None = None
    figure: FigurePayload | None = None
    anchors: list[str] | None = None


class SectionBlocksPayload(WireModel):
    section_order_index: int
    blocks: list[BlockPayload]


class IdentifierPayload(WireModel):
    id: str
    scheme: str
    value: str
    type: str


class MetadataPayload(WireModel):
    title: str
    authors: list[str]
    language: str
    publisher: str
    published_at: str
    series: str
    series_index: str
    subjects: list[str]
    identifiers: list[IdentifierPayload]


class WarningPayload(WireModel):
    code: str
    message: str
    path: str


class CoverPayload(WireModel):
    content_type: str
    data: str


class ImagePayload(WireModel):
    href: str
    content_type: str | None = None
    data: str
    width: int | None = None
    height: int | None = None


class ParseResponse(WireModel):
    file_name: str
    file_size: int
    message: str
    sections: list[SectionPayload]
    chunks: list[ChunkPayload]
    section_blocks: list[SectionBlocksPayload] | None = None
    metadata: MetadataPayload
    warnings: list[WarningPayload]
    cover: CoverPayload | None = None
    images: list[ImagePayload] | None = None


class HealthResponse(WireModel):
    status: str
    time: str


class ErrorResponse(WireModel):
    error: str
