import pytest

from librium_parser.alignment.converters import convert_block
from librium_parser.alignment.resources import (
    ImageCollector,
    probe_image,
    resolve_resource_href,
)
from librium_parser.observability import InMemoryMetricsHook, names
from librium_parser.parsers.models import Block, BlockKind, Inline, InlineKind


class TestResolveResourceHref:
    def test_relative_path_is_joined_and_cleaned(self) -> None:
        """Query and fragment are dropped and '..' is resolved."""
        assert (
            resolve_resource_href("chapter1/index.xhtml", "../images/fig.png?x=1#y")
            == "images/fig.png"
        )

    @pytest.mark.parametrize(
        "src",
        [
            "http://x/y.png",
            "HTTPS://x/y.png",
            "//cdn.example.com/y.png",
            "data:image/png;base64,AAAA",
        ],
    )
    def test_external_references_are_unresolved(self, src: str) -> None:
        assert resolve_resource_href("", src) == ""

    def test_leading_dot_slash_and_slash_are_stripped(self) -> None:
        assert resolve_resource_href("text/ch.xhtml", "./img/a.png") == "text/img/a.png"
        assert resolve_resource_href("", "/img/a.png") == "img/a.png"

    def test_without_base_path(self) -> None:
        assert resolve_resource_href("", "  images/a.png  ") == "images/a.png"

    def test_empty_source(self) -> None:
        assert resolve_resource_href("text/ch.xhtml", "") == ""


class TestProbeImage:
    def test_png_type_and_size(self, png_factory) -> None:
        assert probe_image(png_factory(7, 3)) == ("image/png", 7, 3)

    def test_undecodable_bytes(self) -> None:
        assert probe_image(b"not an image") == (None, None, None)


class TestImageCollector:
    def test_each_path_is_fetched_once(self, make_book, png_factory) -> None:
        """Repeated references share one entry and its dimensions."""
        book = make_book(spine=[], resources={"images/a.png": png_factory(4, 2)})
        hook = InMemoryMetricsHook()
        images = ImageCollector(book, metrics_hook=hook)

        first = images.ensure("images/a.png")
        second = images.ensure("images/a.png")

        assert first is second
        assert first is not None
        assert (first.width, first.height) == (4, 2)
        assert first.content_type == "image/png"
        assert book.resource_opens == {"images/a.png": 1}
        assert hook.counters[names.IMAGES_FETCHED_TOTAL] == 1

    def test_missing_resource_is_remembered(self, make_book) -> None:
        book = make_book(spine=[])
        hook = InMemoryMetricsHook()
        images = ImageCollector(book, metrics_hook=hook)

        assert images.ensure("missing.png") is None
        assert images.ensure("missing.png") is None
        assert book.resource_opens == {"missing.png": 1}
        assert images.entries() == []
        assert hook.counters[names.IMAGES_FAILED_TOTAL] == 1

    def test_empty_resource_is_a_failure(self, make_book) -> None:
        book = make_book(spine=[], resources={"empty.png": b""})

        assert ImageCollector(book).ensure("empty.png") is None

    def test_undecodable_image_is_embedded_without_size(self, make_book) -> None:
        """SVG and other formats Pillow cannot read keep their bytes."""
        svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"/>'
        book = make_book(spine=[], resources={"img/logo.svg": svg})

        entry = ImageCollector(book).ensure("img/logo.svg")

        assert entry is not None
        assert entry.content_type == "image/svg+xml"
        assert entry.width is None
        assert entry.height is None

    def test_unknown_extension_falls_back_to_sniffed_type(
        self, make_book, png_factory
    ) -> None:
        book = make_book(spine=[], resources={"img/blob": png_factory(1, 1)})

        entry = ImageCollector(book).ensure("img/blob")

        assert entry is not None
        assert entry.content_type == "image/png"

    def test_entries_are_sorted_by_href(self, make_book, png_factory) -> None:
        data = png_factory(1, 1)
        book = make_book(spine=[], resources={"b.png": data, "a.png": data})
        images = ImageCollector(book)
        images.ensure("b.png")
        images.ensure("a.png")

        assert [e.href for e in images.entries()] == ["a.png", "b.png"]

    def test_shared_dimensions_across_inline_elements(
        self, make_book, png_factory
    ) -> None:
        """Every inline pointing at one image gets the same width and height."""
        book = make_book(spine=[], resources={"text/img/a.png": png_factory(5, 9)})
        images = ImageCollector(book)
        block = Block(
            kind=BlockKind.PARAGRAPH,
            inlines=[
                Inline(kind=InlineKind.IMAGE, src="img/a.png"),
                Inline(kind=InlineKind.TEXT, text=" and "),
                Inline(kind=InlineKind.IMAGE, src="./img/a.png?v=2"),
            ],
        )

        payload = convert_block(block, "text/ch1.xhtml", images)

        assert payload.inlines is not None
        first, _, second = payload.inlines
        assert first.src == second.src == "text/img/a.png"
        assert (first.width, first.height) == (second.width, second.height) == (5, 9)
        assert book.resource_opens == {"text/img/a.png": 1}
