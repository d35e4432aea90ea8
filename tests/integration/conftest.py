import io
from pathlib import Path

import pytest
from ebooklib import epub
from PIL import Image


def _png(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(20, 120, 200)).save(buf, format="PNG")
    return buf.getvalue()


def _chapter(file_name: str, title: str, body: str) -> epub.EpubHtml:
    chapter = epub.EpubHtml(title=title, file_name=file_name, lang="en")
    chapter.content = (
        f"<html><head><title>{title}</title></head><body>{body}</body></html>"
    )
    return chapter


def _finish(book: epub.EpubBook, chapters: list[epub.EpubHtml], path: Path) -> None:
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = chapters
    epub.write_epub(str(path), book)


def _create_sample_epub(path: Path) -> None:
    """
    Three chapters with a nested outline.
    - Two outline entries point into chapter one by fragment
    - "Part Two" and "Chapter Two" both start at chapter two
    - One image is referenced twice from chapter two
    """
    book = epub.EpubBook()
    book.set_identifier("urn:uuid:0b6a9d1e-sample")
    book.set_title("Sample Book")
    book.set_language("en")
    book.add_author("Ada Writer")
    book.add_metadata("DC", "publisher", "Librium Press")
    book.add_metadata("DC", "date", "2021-05-01")
    book.add_metadata("DC", "subject", "Fiction")
    book.add_metadata("DC", "identifier", "9780000000002", {"id": "isbn"})
    book.add_metadata(
        "OPF", "identifier-type", "15", {"refines": "#isbn", "property": "identifier-type"}
    )
    book.add_metadata(
        "OPF",
        "belongs-to-collection",
        "Librium Tales",
        {"property": "belongs-to-collection", "id": "series"},
    )
    book.add_metadata(
        "OPF", "group-position", "2", {"refines": "#series", "property": "group-position"}
    )

    c1 = _chapter(
        "text/c1.xhtml",
        "Introduction",
        '<h1 id="intro">Introduction</h1>'
        "<p>Opening words of the book.</p>"
        '<p id="later">Later part of the introduction.</p>'
        "<p>Closing words.</p>",
    )
    c2 = _chapter(
        "text/c2.xhtml",
        "Chapter Two",
        "<h1>Chapter Two</h1>"
        '<p>Text with an image <img src="../images/fig.png" alt="Figure"/></p>'
        '<figure><img src="../images/fig.png" alt="Again"/>'
        "<figcaption>Same figure</figcaption></figure>",
    )
    c3 = _chapter(
        "text/c3.xhtml",
        "Chapter Three",
        "<h1>Chapter Three</h1><ol><li>one</li><li>two</li></ol>"
        "<table><tr><th>Key</th></tr><tr><td>Value</td></tr></table>",
    )
    for chapter in (c1, c2, c3):
        book.add_item(chapter)
    book.add_item(
        epub.EpubItem(
            uid="fig",
            file_name="images/fig.png",
            media_type="image/png",
            content=_png(6, 4),
        )
    )
    book.set_cover("images/cover.png", _png(2, 3), create_page=False)

    book.toc = [
        epub.Link("text/c1.xhtml#intro", "Introduction", "intro"),
        epub.Link("text/c1.xhtml#later", "Later", "later"),
        (
            epub.Section("Part Two", href="text/c2.xhtml"),
            [
                epub.Link("text/c2.xhtml", "Chapter Two", "c2"),
                epub.Link("text/c3.xhtml", "Chapter Three", "c3"),
            ],
        ),
    ]
    _finish(book, [c1, c2, c3], path)


def _create_warning_epub(path: Path) -> None:
    """An outline entry outside the spine and an image missing from the manifest."""
    book = epub.EpubBook()
    book.set_identifier("urn:uuid:warnings")
    book.set_title("Warnings")
    book.set_language("en")

    c1 = _chapter(
        "c1.xhtml",
        "Only",
        '<h1>Only Chapter</h1><p>Picture: <img src="missing.png" alt="gone"/></p>',
    )
    book.add_item(c1)
    book.toc = [
        epub.Link("c1.xhtml", "Only Chapter", "c1"),
        epub.Link("appendix.xhtml", "Appendix", "appendix"),
    ]
    _finish(book, [c1], path)


@pytest.fixture(scope="module")
def epub_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Create all test EPUBs once per module."""
    dir_path: Path = tmp_path_factory.mktemp("epubs")

    _create_sample_epub(dir_path / "sample.epub")
    _create_warning_epub(dir_path / "warnings.epub")
    (dir_path / "corrupt.epub").write_bytes(b"this is not a zip container")

    return dir_path
