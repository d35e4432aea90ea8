from librium_parser.alignment.converters import (
    block_kind_name,
    convert_block,
    inline_kind_name,
)
from librium_parser.alignment.resources import ImageCollector
from librium_parser.parsers.models import (
    Block,
    BlockKind,
    Figure,
    Inline,
    InlineKind,
    Table,
    TableCell,
    TableRow,
)


class TestKindNames:
    def test_known_kinds_pass_through(self) -> None:
        assert block_kind_name(BlockKind.LIST_ITEM) == "list_item"
        assert block_kind_name("heading") == "heading"
        assert inline_kind_name(InlineKind.CODE) == "code"

    def test_unknown_kinds_fold(self) -> None:
        """Unrecognized block kinds become paragraphs, inline kinds text."""
        assert block_kind_name("aside") == "paragraph"
        assert inline_kind_name("superscript") == "text"


class TestConvertBlock:
    def test_zero_values_are_dropped_on_the_wire(self, make_book) -> None:
        book = make_book(spine=[])
        block = Block(
            kind=BlockKind.PARAGRAPH,
            inlines=[Inline(kind=InlineKind.TEXT, text="plain")],
        )

        wire = convert_block(block, "a.xhtml", ImageCollector(book)).to_wire()

        assert wire == {"kind": "paragraph", "inlines": [{"kind": "text", "text": "plain"}]}

    def test_list_item_fields(self, make_book) -> None:
        book = make_book(spine=[])
        block = Block(
            kind=BlockKind.LIST_ITEM,
            inlines=[Inline(kind=InlineKind.STRONG, text="x", strong=True)],
            anchors=["item"],
            level=2,
            ordered=True,
            list_index=3,
        )

        wire = convert_block(block, "a.xhtml", ImageCollector(book)).to_wire()

        assert wire["kind"] == "list_item"
        assert (wire["level"], wire["ordered"], wire["listIndex"]) == (2, True, 3)
        assert wire["anchors"] == ["item"]
        assert wire["inlines"] == [{"kind": "strong", "text": "x", "strong": True}]

    def test_table_cells(self, make_book) -> None:
        book = make_book(spine=[])
        block = Block(
            kind=BlockKind.TABLE,
            table=Table(
                rows=[
                    TableRow(
                        cells=[
                            TableCell(
                                inlines=[Inline(kind=InlineKind.TEXT, text="H")],
                                header=True,
                            ),
                            TableCell(inlines=[Inline(kind=InlineKind.TEXT, text="v")]),
                        ]
                    )
                ]
            ),
        )

        wire = convert_block(block, "a.xhtml", ImageCollector(book)).to_wire()

        assert wire["table"] == {
            "rows": [
                {
                    "cells": [
                        {"inlines": [{"kind": "text", "text": "H"}], "header": True},
                        {"inlines": [{"kind": "text", "text": "v"}]},
                    ]
                }
            ]
        }

    def test_figure_images_are_rewritten(self, make_book, png_factory) -> None:
        book = make_book(spine=[], resources={"OEBPS/img/p.png": png_factory(2, 2)})
        images = ImageCollector(book)
        block = Block(
            kind=BlockKind.FIGURE,
            figure=Figure(
                images=[Inline(kind=InlineKind.IMAGE, src="../img/p.png", alt="pic")],
                caption=[Inline(kind=InlineKind.TEXT, text="Caption")],
            ),
        )

        wire = convert_block(block, "OEBPS/text/c.xhtml", images).to_wire()

        assert wire["figure"]["images"] == [
            {
                "kind": "image",
                "src": "OEBPS/img/p.png",
                "alt": "pic",
                "width": 2,
                "height": 2,
            }
        ]
        assert wire["figure"]["caption"] == [{"kind": "text", "text": "Caption"}]
        assert [e.href for e in images.entries()] == ["OEBPS/img/p.png"]

    def test_external_image_keeps_original_src(self, make_book) -> None:
        book = make_book(spine=[])
        images = ImageCollector(book)
        block = Block(
            kind=BlockKind.PARAGRAPH,
            inlines=[Inline(kind=InlineKind.IMAGE, src="https://example.com/a.png")],
        )

        payload = convert_block(block, "a.xhtml", images)

        assert payload.inlines is not None
        assert payload.inlines[0].src == "https://example.com/a.png"
        assert payload.inlines[0].width is None
        assert book.resource_opens == {}

    def test_failed_image_keeps_resolved_src_without_size(self, make_book) -> None:
        book = make_book(spine=[])
        block = Block(
            kind=BlockKind.PARAGRAPH,
            inlines=[Inline(kind=InlineKind.IMAGE, src="missing.png")],
        )

        payload = convert_block(block, "text/a.xhtml", ImageCollector(book))

        assert payload.inlines is not None
        assert payload.inlines[0].src == "text/missing.png"
        assert payload.inlines[0].height is None
