"""Image references: path normalization and per-request deduplication."""

import base64
import io
import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from typing import BinaryIO, Protocol

from PIL import Image

from librium_parser.errors import LibriumError
from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook

logger = logging.getLogger(__name__)

EXTERNAL_PREFIXES = ("http://", "https://", "data:", "//")
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ResourceSource(Protocol):
    def open_resource(self, href: str) -> BinaryIO: ...


@dataclass(frozen=True)
class ResourceEntry:
    href: str
    content_type: str
    data: str  # base64
    width: int | None = None
    height: int | None = None


def resolve_resource_href(base_href: str, src: str) -> str:
    """Canonical container path for ``src`` as seen from ``base_href``.

    Returns "" for references that point outside the container (absolute
    URLs, protocol-relative URLs, data URIs).
    """
    if not src:
        return ""
    clean = src.strip()
    if clean.lower().startswith(EXTERNAL_PREFIXES):
        return ""
    clean = clean.split("#", 1)[0]
    clean = clean.split("?", 1)[0]
    clean = clean.removeprefix("./")
    clean = clean.removeprefix("/")
    if base_href:
        clean = posixpath.join(posixpath.dirname(base_href), clean)
    return posixpath.normpath(clean)


def probe_image(data: bytes) -> tuple[str | None, int | None, int | None]:
    """Sniff (content type, width, height); any part may be unknown."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            return Image.MIME.get(image.format or ""), width, height
    except (OSError, ValueError, Image.DecompressionBombError):
        return None, None, None


class ImageCollector:
    """Resources referenced while converting one response.

    Each normalized path is fetched, typed, measured and encoded at most
    once, failures included. Not shared between requests.
    """

    def __init__(
        self,
        source: ResourceSource,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._source = source
        self.metrics_hook = metrics_hook
        self._entries: dict[str, ResourceEntry] = {}
        self._failed: set[str] = set()

    def ensure(self, href: str) -> ResourceEntry | None:
        if not href or href in self._failed:
            return None
        if href in self._entries:
            return self._entries[href]

        try:
            with self._source.open_resource(href) as stream:
                data = stream.read()
        except (LibriumError, KeyError, OSError) as exc:
            logger.warning("Failed to fetch resource %s: %s", href, exc)
            self._fail(href)
            return None
        if not data:
            logger.warning("Resource %s is empty", href)
            self._fail(href)
            return None

        sniffed_type, width, height = probe_image(data)
        content_type = mimetypes.guess_type(href)[0] or sniffed_type or DEFAULT_CONTENT_TYPE
        entry = ResourceEntry(
            href=href,
            content_type=content_type,
            data=base64.b64encode(data).decode("ascii"),
            width=width,
            height=height,
        )
        self._entries[href] = entry
        self.metrics_hook.increment(names.IMAGES_FETCHED_TOTAL)
        logger.debug("Embedded %s (%s, %sx%s)", href, content_type, width, height)
        return entry

    def entries(self) -> list[ResourceEntry]:
        return [self._entries[href] for href in sorted(self._entries)]

    def _fail(self, href: str) -> None:
        self._failed.add(href)
        self.metrics_hook.increment(names.IMAGES_FAILED_TOTAL)
