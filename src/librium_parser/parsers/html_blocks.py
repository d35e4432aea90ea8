"""XHTML content documents to structural blocks.

Walks a spine document with BeautifulSoup and emits a flat, ordered list of
blocks (paragraphs, headings, list items, quotes, preformatted text, rules,
tables and figures). Every element id is mapped to the index of the block
that carries it, so ``chapter.xhtml#intro`` can be resolved to a block
position later on.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from bs4 import (
    BeautifulSoup,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

from .models import (
    Block,
    BlockKind,
    Figure,
    Inline,
    InlineKind,
    Table,
    TableCell,
    TableRow,
)

logger = logging.getLogger(__name__)

_NON_TEXT = (Comment, Declaration, Doctype, ProcessingInstruction)

_WHITESPACE = re.compile(r"\s+")

_HEADINGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_CONTAINERS = {
    "body",
    "div",
    "section",
    "article",
    "aside",
    "main",
    "header",
    "footer",
    "nav",
    "hgroup",
    "center",
    "dl",
}
_PARAGRAPH_LIKE = {"p", "dt", "dd", "address", "caption"}
_LISTS = {"ul", "ol"}
_BLOCK_TAGS = (
    _CONTAINERS
    | _PARAGRAPH_LIKE
    | _LISTS
    | set(_HEADINGS)
    | {"li", "blockquote", "pre", "hr", "table", "figure"}
)
_SKIPPED = {"script", "style", "head", "title", "meta", "link", "noscript"}
_EMPHASIS_TAGS = {"em", "i", "cite", "dfn", "var"}
_STRONG_TAGS = {"strong", "b"}
_CODE_TAGS = {"code", "kbd", "samp", "tt"}


@dataclass
class DocumentBlocks:
    blocks: list[Block] = field(default_factory=list)
    anchors: dict[str, int] = field(default_factory=dict)
    image_sources: list[str] = field(default_factory=list)


def extract_blocks(markup: str | bytes) -> DocumentBlocks:
    soup = BeautifulSoup(markup, "html.parser")
    root = soup.body or soup
    builder = _BlockBuilder()
    builder.walk(root)
    result = builder.finish()
    logger.debug(
        "Extracted %d blocks with %d anchors", len(result.blocks), len(result.anchors)
    )
    return result


class _BlockBuilder:
    def __init__(self) -> None:
        self._result = DocumentBlocks()
        # ids seen on containers or empty elements, waiting for the next block
        self._pending: list[str] = []
        self._quote_depth = 0

    def finish(self) -> DocumentBlocks:
        end = len(self._result.blocks)
        for anchor in self._pending:
            self._result.anchors.setdefault(anchor, end)
        self._pending = []
        return self._result

    def walk(self, element: Tag, list_level: int = 0) -> None:
        buffer: list[NavigableString | Tag] = []
        for child in element.children:
            if isinstance(child, _NON_TEXT):
                continue
            if isinstance(child, NavigableString):
                if child.strip() or buffer:
                    buffer.append(child)
                continue
            if not isinstance(child, Tag):
                continue
            name = child.name.lower()
            if name in _SKIPPED:
                continue
            if name in _BLOCK_TAGS:
                self._flush(buffer)
                buffer = []
                self._visit(child, list_level)
            else:
                buffer.append(child)
        self._flush(buffer)

    def _flush(self, nodes: list[NavigableString | Tag]) -> None:
        if not nodes:
            return
        inlines = self._inlines(nodes)
        ids = [i for node in nodes if isinstance(node, Tag) for i in _ids(node)]
        self._emit(BlockKind.PARAGRAPH, ids, inlines=inlines)

    def _visit(self, tag: Tag, list_level: int) -> None:
        name = tag.name.lower()

        if name in _CONTAINERS:
            if tag.get("id"):
                self._pending.append(str(tag["id"]))
            self.walk(tag, list_level)
        elif name in _HEADINGS:
            self._emit(
                BlockKind.HEADING,
                _ids(tag),
                inlines=self._inlines(tag.children),
                level=_HEADINGS[name],
            )
        elif name in _PARAGRAPH_LIKE:
            self._emit(BlockKind.PARAGRAPH, _ids(tag), inlines=self._inlines(tag.children))
        elif name in _LISTS:
            self._visit_list(tag, list_level + 1)
        elif name == "li":
            self._visit_list_item(tag, list_level or 1, ordered=False, list_index=0)
        elif name == "blockquote":
            # one quote block per paragraph inside
            if tag.get("id"):
                self._pending.append(str(tag["id"]))
            self._quote_depth += 1
            self.walk(tag, list_level)
            self._quote_depth -= 1
        elif name == "pre":
            text = tag.get_text()
            inlines = [Inline(kind=InlineKind.TEXT, text=text)] if text else []
            self._emit(BlockKind.PRE, _ids(tag), inlines=inlines, keep_empty=True)
        elif name == "hr":
            self._emit(BlockKind.HR, _ids(tag), keep_empty=True)
        elif name == "table":
            self._emit(
                BlockKind.TABLE, _ids(tag), table=self._table(tag), keep_empty=True
            )
        elif name == "figure":
            self._emit(
                BlockKind.FIGURE, _ids(tag), figure=self._figure(tag), keep_empty=True
            )

    def _visit_list(self, tag: Tag, level: int) -> None:
        ordered = tag.name.lower() == "ol"
        if tag.get("id"):
            self._pending.append(str(tag["id"]))
        try:
            index = int(str(tag.get("start", "1")))
        except ValueError:
            index = 1
        for child in tag.find_all("li", recursive=False):
            self._visit_list_item(
                child, level, ordered=ordered, list_index=index if ordered else 0
            )
            index += 1

    def _visit_list_item(
        self, tag: Tag, level: int, *, ordered: bool, list_index: int
    ) -> None:
        nested = [c for c in tag.children if isinstance(c, Tag) and c.name in _LISTS]
        own_ids = [i for i in _ids(tag) if not _inside_any(tag, i, nested)]
        self._emit(
            BlockKind.LIST_ITEM,
            own_ids,
            inlines=self._inlines(tag.children, skip_lists=True),
            level=level,
            ordered=ordered,
            list_index=list_index,
        )
        for child in nested:
            self._visit_list(child, level + 1)

    def _table(self, tag: Tag) -> Table:
        rows = []
        for tr in tag.find_all("tr"):
            cells = [
                TableCell(
                    inlines=self._inlines(cell.children),
                    header=cell.name.lower() == "th",
                )
                for cell in tr.find_all(["td", "th"], recursive=False)
            ]
            rows.append(TableRow(cells=cells))
        return Table(rows=rows)

    def _figure(self, tag: Tag) -> Figure:
        images = [self._image(img) for img in tag.find_all("img")]
        caption_tag = tag.find("figcaption")
        caption = self._inlines(caption_tag.children) if caption_tag else []
        return Figure(images=images, caption=caption)

    def _image(self, tag: Tag) -> Inline:
        src = str(tag.get("src", "")).strip()
        if src:
            self._result.image_sources.append(src)
        return Inline(kind=InlineKind.IMAGE, src=src, alt=str(tag.get("alt", "")))

    def _emit(
        self,
        kind: BlockKind,
        ids: list[str],
        *,
        inlines: list[Inline] | None = None,
        keep_empty: bool = False,
        **fields: object,
    ) -> None:
        inlines = _trim(inlines or [])
        if not inlines and not keep_empty:
            # Empty element: its ids point at whatever block comes next
            self._pending.extend(ids)
            return
        if kind == BlockKind.PARAGRAPH and self._quote_depth:
            kind = BlockKind.BLOCKQUOTE
        block_index = len(self._result.blocks)
        anchors = self._pending + [i for i in ids if i not in self._pending]
        self._pending = []
        for anchor in anchors:
            self._result.anchors.setdefault(anchor, block_index)
        self._result.blocks.append(
            Block(kind=kind, inlines=inlines, anchors=anchors, **fields)  # type: ignore[arg-type]
        )

    def _inlines(
        self,
        nodes: Iterable[object],
        *,
        emph: bool = False,
        strong: bool = False,
        skip_lists: bool = False,
    ) -> list[Inline]:
        out: list[Inline] = []
        for node in nodes:
            if isinstance(node, _NON_TEXT):
                continue
            if isinstance(node, NavigableString):
                text = _WHITESPACE.sub(" ", str(node))
                if text:
                    out.append(_text_inline(text, emph, strong))
                continue
            if not isinstance(node, Tag):
                continue

            name = node.name.lower()
            if name in _SKIPPED or (skip_lists and name in _LISTS):
                continue
            if name == "img":
                out.append(self._image(node))
            elif name == "br":
                out.append(Inline(kind=InlineKind.TEXT, text="\n"))
            elif name in _CODE_TAGS:
                out.append(
                    Inline(
                        kind=InlineKind.CODE,
                        text=node.get_text(),
                        emph=emph,
                        strong=strong,
                    )
                )
            elif name == "a" and node.get("href") and node.find("img") is None:
                out.append(
                    Inline(
                        kind=InlineKind.LINK,
                        text=_WHITESPACE.sub(" ", node.get_text()),
                        href=str(node["href"]),
                        emph=emph,
                        strong=strong,
                    )
                )
            else:
                out.extend(
                    self._inlines(
                        node.children,
                        emph=emph or name in _EMPHASIS_TAGS,
                        strong=strong or name in _STRONG_TAGS,
                        skip_lists=skip_lists,
                    )
                )
        return out


def _text_inline(text: str, emph: bool, strong: bool) -> Inline:
    if strong:
        kind = InlineKind.STRONG
    elif emph:
        kind = InlineKind.EMPHASIS
    else:
        kind = InlineKind.TEXT
    return Inline(kind=kind, text=text, emph=emph, strong=strong)


def _trim(inlines: list[Inline]) -> list[Inline]:
    """Strip outer whitespace of a block and drop runs that become empty."""
    items = list(inlines)
    while items and _is_blank_text(items[0]):
        items.pop(0)
    while items and _is_blank_text(items[-1]):
        items.pop()
    if not items:
        return []
    if _is_text_run(items[0]):
        items[0] = _replace_text(items[0], items[0].text.lstrip())
    if _is_text_run(items[-1]):
        items[-1] = _replace_text(items[-1], items[-1].text.rstrip())
    return items


def _is_text_run(inline: Inline) -> bool:
    return inline.kind in (InlineKind.TEXT, InlineKind.EMPHASIS, InlineKind.STRONG)


def _is_blank_text(inline: Inline) -> bool:
    return _is_text_run(inline) and not inline.text.strip()


def _replace_text(inline: Inline, text: str) -> Inline:
    return Inline(
        kind=inline.kind,
        text=text,
        href=inline.href,
        src=inline.src,
        alt=inline.alt,
        emph=inline.emph,
        strong=inline.strong,
    )


def _ids(tag: Tag) -> list[str]:
    ids = [str(tag["id"])] if tag.get("id") else []
    ids.extend(str(child["id"]) for child in tag.find_all(id=True))
    return ids


def _inside_any(tag: Tag, anchor: str, containers: list[Tag]) -> bool:
    return any(c.find(id=anchor) is not None or c.get("id") == anchor for c in containers)
