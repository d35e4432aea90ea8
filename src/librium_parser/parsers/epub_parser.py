# parsers/epub_parser.py

import bisect
import io
import logging
import shutil
import tempfile
import zipfile
from pathlib import Path
from time import monotonic
from typing import Any, BinaryIO
from urllib.parse import unquote

import ebooklib
from ebooklib import epub
from lxml import etree

from librium_parser.alignment.resources import resolve_resource_href
from librium_parser.chunking.chunking import (
    Chunk,
    ChunkingOptions,
    build_content_stream,
    chunk_stream,
)
from librium_parser.errors import (
    BlockLoadError,
    ChunkingError,
    ParseFatalError,
    ResourceNotFoundError,
)
from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook

from .base import DocumentParser
from .config import ParserConfig
from .html_blocks import DocumentBlocks, extract_blocks
from .models import (
    AnchorRef,
    Block,
    BlockKind,
    Cover,
    Identifier,
    Metadata,
    ParseWarning,
    SpineItem,
    TocItem,
    TocTarget,
)

logger = logging.getLogger(__name__)

OPF_NS = epub.NAMESPACES["OPF"]
DC_NS = epub.NAMESPACES["DC"]


class EpubParser(DocumentParser):
    """
    EPUB decoder backed by ebooklib.
    - Reads the manifest, spine, TOC and metadata
    - Converts every spine document to blocks up front
    - Reports recoverable problems as warnings (fatal in strict mode)
    """

    def __init__(
        self,
        config: ParserConfig = ParserConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._config = config
        self.metrics_hook = metrics_hook

    def parse(self, source: str | Path | BinaryIO) -> "EpubBook":
        start = monotonic()
        if isinstance(source, (str, Path)):
            book = self._read(str(source))
        else:
            # ebooklib wants a filesystem path
            with tempfile.NamedTemporaryFile(suffix=".epub") as tmp:
                shutil.copyfileobj(source, tmp)
                tmp.flush()
                book = self._read(tmp.name)

        parsed = EpubBook(
            book, config=self._config, metrics_hook=self.metrics_hook
        )
        if self._config.strict and parsed.warnings:
            raise ParseFatalError(
                "strict mode: " + "; ".join(w.message for w in parsed.warnings)
            )

        elapsed_ms = 1000 * (monotonic() - start)
        logger.info(
            "Parsed EPUB with %d spine documents and %d warnings in %.1fms",
            len(parsed.spine),
            len(parsed.warnings),
            elapsed_ms,
        )
        return parsed

    def _read(self, path: str) -> epub.EpubBook:
        try:
            return epub.read_epub(path)
        except (
            epub.EpubException,
            zipfile.BadZipFile,
            etree.LxmlError,
            KeyError,
            ValueError,
            OSError,
        ) as exc:
            logger.error("Failed to read EPUB container %s: %s", path, exc)
            raise ParseFatalError("failed to read epub container", path) from exc


class EpubBook:
    """Decoded EPUB exposing the ``Book`` contract."""

    def __init__(
        self,
        book: epub.EpubBook,
        *,
        config: ParserConfig = ParserConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
        source_id: str = "book",
    ) -> None:
        self._book = book
        self._config = config
        self._source_id = source_id
        self.metrics_hook = metrics_hook
        self.warnings: list[ParseWarning] = []

        self.spine = self._load_spine()
        self._spine_index = {item.href: i for i, item in enumerate(self.spine)}
        self._documents: dict[int, DocumentBlocks] = {}
        self._failed: dict[int, str] = {}
        for document_index in range(len(self.spine)):
            self._load_document(document_index)

        self._stream, self._units = build_content_stream(
            [
                [block.plain_text() for block in self._documents[i].blocks]
                if i in self._documents
                else []
                for i in range(len(self.spine))
            ]
        )
        self._unit_keys = [(u.document_index, u.block_index) for u in self._units]
        self._chunks: dict[ChunkingOptions, list[Chunk]] = {}

        self.toc = self._load_toc()
        self.metadata = self._load_metadata()

    def __enter__(self) -> "EpubBook":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._documents.clear()
        self._chunks.clear()

    # --- Book contract ---

    def resolve_anchor(
        self, target: str, options: ChunkingOptions | None = None
    ) -> AnchorRef | None:
        href, _, fragment = target.partition("#")
        document_index = self._spine_index.get(unquote(href))
        if document_index is None or document_index not in self._documents:
            return None

        document = self._documents[document_index]
        block_index = 0
        if fragment:
            found = document.anchors.get(unquote(fragment))
            if found is None:
                return None
            block_index = found

        return AnchorRef(
            document_index=document_index,
            block_index=block_index,
            chunk_id=self._chunk_id_at(
                document_index, block_index, options or self._config.chunking
            ),
        )

    def chunks(self, options: ChunkingOptions) -> list[Chunk]:
        if options not in self._chunks:
            try:
                self._chunks[options] = chunk_stream(
                    self._stream,
                    self._units,
                    options=options,
                    metadata={"source_id": self._source_id},
                    metrics_hook=self.metrics_hook,
                )
            except ValueError as exc:
                self.metrics_hook.increment(names.CHUNKING_ERRORS_TOTAL)
                raise ChunkingError(str(exc)) from exc
        return list(self._chunks[options])

    def blocks(self, document_index: int) -> list[Block]:
        if document_index in self._failed:
            raise BlockLoadError(document_index, self._failed[document_index])
        if document_index not in self._documents:
            raise BlockLoadError(document_index, "no such spine document")
        return list(self._documents[document_index].blocks)

    def open_resource(self, href: str) -> BinaryIO:
        item = self._book.get_item_with_href(href)
        if item is None:
            raise ResourceNotFoundError(href)
        return io.BytesIO(item.get_content())

    def cover(self) -> Cover | None:
        item = self._find_cover_item()
        if item is None:
            return None
        data = item.get_content()
        if not data:
            return None
        return Cover(content_type=item.media_type or "", data=data, href=item.get_name())

    # --- loading ---

    def _warn(self, code: str, message: str, path: str = "") -> None:
        logger.warning("%s: %s (%s)", code, message, path)
        self.warnings.append(ParseWarning(code=code, message=message, path=path))

    def _load_spine(self) -> list[SpineItem]:
        items: list[SpineItem] = []
        for entry in self._book.spine:
            idref, linear = entry if isinstance(entry, tuple) else (entry, "yes")
            item = self._book.get_item_with_id(idref)
            if item is None:
                self._warn("spine_item_missing", "spine references unknown item", idref)
                continue
            if item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            items.append(
                SpineItem(
                    idref=idref,
                    href=item.get_name(),
                    media_type=item.media_type or "application/xhtml+xml",
                    linear=linear != "no",
                )
            )
        return items

    def _load_document(self, document_index: int) -> None:
        href = self.spine[document_index].href
        item = self._book.get_item_with_href(href)
        try:
            document = extract_blocks(item.get_content())
        except (epub.EpubException, LookupError, ValueError, OSError) as exc:
            self._failed[document_index] = str(exc)
            self._warn("document_parse_error", f"failed to read document: {exc}", href)
            return

        self._documents[document_index] = document
        for src in document.image_sources:
            resolved = resolve_resource_href(href, src)
            if resolved and self._book.get_item_with_href(resolved) is None:
                self._warn("missing_resource", "referenced image not in manifest", resolved)

    def _load_toc(self) -> list[TocItem]:
        toc = [self._convert_toc_entry(entry) for entry in self._book.toc]
        toc = [item for item in toc if item is not None]
        if toc:
            return toc

        if not self._config.generate_toc:
            self._warn("missing_toc", "table of contents missing")
            return []

        self._warn("missing_toc", "table of contents missing; generated from spine")
        generated = []
        for index, spine_item in enumerate(self.spine):
            document = self._documents.get(index)
            headings = [
                b.plain_text()
                for b in (document.blocks if document else [])
                if b.kind == BlockKind.HEADING
            ]
            generated.append(TocItem(label=headings[0] if headings else "", href=spine_item.href))
        return generated

    def _convert_toc_entry(self, entry: Any) -> TocItem | None:
        if isinstance(entry, (tuple, list)) and len(entry) == 2:
            head, children = entry
            converted = [self._convert_toc_entry(child) for child in children]
            child_items = [c for c in converted if c is not None]
        else:
            head, child_items = entry, []

        label = (getattr(head, "title", "") or "").strip()
        href = getattr(head, "href", "") or ""
        target = None
        if not href:
            nested = _first_href(child_items)
            target = TocTarget(href=nested) if nested else None
        else:
            path = unquote(href.partition("#")[0])
            if path not in self._spine_index:
                self._warn("toc_target_missing", "toc entry points outside the spine", href)
        return TocItem(label=label, href=href, target=target, children=child_items)

    def _load_metadata(self) -> Metadata:
        refinements = self._refinements()
        identifiers = []
        for value, attrs in self._meta(DC_NS, "identifier"):
            ident_id = attrs.get("id", "")
            identifiers.append(
                Identifier(
                    id=ident_id,
                    scheme=attrs.get(f"{{{OPF_NS}}}scheme", "") or attrs.get("scheme", ""),
                    value=(value or "").strip(),
                    type=refinements.get((ident_id, "identifier-type"), ""),
                )
            )

        series = self._named_meta_content("calibre:series")
        series_index = self._named_meta_content("calibre:series_index")
        if not series:
            for value, attrs in self._property_meta():
                if attrs.get("property") == "belongs-to-collection" and value:
                    series = value.strip()
                    series_index = refinements.get(
                        (attrs.get("id", ""), "group-position"), series_index
                    )
                    break

        return Metadata(
            title=self._first_value(DC_NS, "title"),
            authors=[v.strip() for v, _ in self._meta(DC_NS, "creator") if v and v.strip()],
            language=self._first_value(DC_NS, "language"),
            publisher=self._first_value(DC_NS, "publisher"),
            pub_date=self._first_value(DC_NS, "date"),
            series=series,
            series_index=series_index,
            subjects=[v.strip() for v, _ in self._meta(DC_NS, "subject") if v and v.strip()],
            identifiers=identifiers,
        )

    def _meta(self, namespace: str, name: str | None) -> list[tuple[str, dict]]:
        return self._book.metadata.get(namespace, {}).get(name, [])

    def _property_meta(self) -> list[tuple[str, dict]]:
        # EPUB3 <meta property=...> entries; ebooklib files them under None or
        # "meta" depending on its version
        return [
            (value, attrs)
            for values in self._book.metadata.get(OPF_NS, {}).values()
            for value, attrs in values
            if attrs and attrs.get("property")
        ]

    def _first_value(self, namespace: str, name: str) -> str:
        for value, _ in self._meta(namespace, name):
            if value and value.strip():
                return value.strip()
        return ""

    def _named_meta_content(self, name: str) -> str:
        # ebooklib files <meta name="prefix:x"> under whatever the prefix maps to
        for entries in self._book.metadata.values():
            for values in entries.values():
                for _, attrs in values:
                    if (attrs or {}).get("name") == name and attrs.get("content"):
                        return attrs["content"].strip()
        return ""

    def _refinements(self) -> dict[tuple[str, str], str]:
        refined: dict[tuple[str, str], str] = {}
        for value, attrs in self._property_meta():
            refines = attrs.get("refines", "")
            prop = attrs.get("property", "")
            if refines.startswith("#") and prop and value:
                refined[(refines[1:], prop)] = value.strip()
        return refined

    def _find_cover_item(self) -> Any:
        cover_id = self._named_meta_content("cover")
        item = self._book.get_item_with_id(cover_id) if cover_id else None
        if item is not None:
            return item

        images = [
            item
            for item in self._book.get_items()
            if (item.media_type or "").startswith("image/")
        ]
        for item in images:
            if "cover-image" in (getattr(item, "properties", None) or []):
                return item
        for item in images:
            if item.get_type() == ebooklib.ITEM_COVER:
                return item
        for item in images:
            if "cover" in item.get_name().lower() or "cover" in (item.get_id() or "").lower():
                return item
        return None

    def _chunk_id_at(
        self, document_index: int, block_index: int, options: ChunkingOptions
    ) -> str:
        try:
            chunks = self.chunks(options)
        except ChunkingError:
            return ""
        if not chunks:
            return ""

        position = bisect.bisect_left(self._unit_keys, (document_index, block_index))
        if position >= len(self._units):
            return chunks[-1].chunk_id
        offset = self._units[position].offset_start

        ends = [chunk.offset_end for chunk in chunks]
        found = bisect.bisect_right(ends, offset)
        if found >= len(chunks):
            return chunks[-1].chunk_id
        return chunks[found].chunk_id


def _first_href(items: list[TocItem]) -> str:
    for item in items:
        if item.href:
            return item.href
        if item.target is not None:
            return item.target.href
        nested = _first_href(item.children)
        if nested:
            return nested
    return ""

