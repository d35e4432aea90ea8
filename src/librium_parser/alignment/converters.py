"""Decoded blocks to wire payloads, with image references rewritten."""

from collections.abc import Sequence

from librium_parser.parsers.models import (
    Block,
    BlockKind,
    Figure,
    Inline,
    InlineKind,
    Table,
)

from .payloads import (
    BlockPayload,
    FigurePayload,
    InlinePayload,
    TableCellPayload,
    TablePayload,
    TableRowPayload,
)
from .resources import ImageCollector, resolve_resource_href


def block_kind_name(kind: BlockKind | str) -> str:
    try:
        return BlockKind(kind).value
    except ValueError:
        return BlockKind.PARAGRAPH.value


def inline_kind_name(kind: InlineKind | str) -> str:
    try:
        return InlineKind(kind).value
    except ValueError:
        return InlineKind.TEXT.value


def convert_block(block: Block, base_href: str, images: ImageCollector) -> BlockPayload:
    return BlockPayload(
        kind=block_kind_name(block.kind),
        level=block.level or None,
        ordered=block.ordered or None,
        list_index=block.list_index or None,
        inlines=convert_inlines(block.inlines, base_href, images) or None,
        table=_convert_table(block.table, base_href, images) if block.table else None,
        figure=_convert_figure(block.figure, base_href, images) if block.figure else None,
        anchors=list(block.anchors) or None,
    )


def convert_inlines(
    inlines: Sequence[Inline], base_href: str, images: ImageCollector
) -> list[InlinePayload]:
    out = []
    for inline in inlines:
        kind = inline_kind_name(inline.kind)
        src = inline.src
        width = height = None
        if kind == InlineKind.IMAGE.value:
            resolved = resolve_resource_href(base_href, inline.src)
            if resolved:
                src = resolved
                entry = images.ensure(resolved)
                if entry is not None:
                    width, height = entry.width, entry.height
        out.append(
            InlinePayload(
                kind=kind,
                text=inline.text or None,
                href=inline.href or None,
                src=src or None,
                alt=inline.alt or None,
                width=width or None,
                height=height or None,
                emph=inline.emph or None,
                strong=inline.strong or None,
            )
        )
    return out


def _convert_table(table: Table, base_href: str, images: ImageCollector) -> TablePayload:
    return TablePayload(
        rows=[
            TableRowPayload(
                cells=[
                    TableCellPayload(
                        inlines=convert_inlines(cell.inlines, base_href, images),
                        header=cell.header or None,
                    )
                    for cell in row.cells
                ]
            )
            for row in table.rows
        ]
    )


def _convert_figure(figure: Figure, base_href: str, images: ImageCollector) -> FigurePayload:
    return FigurePayload(
        images=convert_inlines(figure.images, base_href, images),
        caption=convert_inlines(figure.caption, base_href, images),
    )
