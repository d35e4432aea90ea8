# src/librium_parser/server/service.py

import logging
from pathlib import Path
from time import monotonic

from librium_parser.alignment.builder import build_parse_response
from librium_parser.alignment.payloads import ParseResponse
from librium_parser.errors import ParseFatalError
from librium_parser.observability import names
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook
from librium_parser.parsers.epub_parser import EpubParser

from .config import ServerConfig

logger = logging.getLogger(__name__)


class ParseService:
    """Decode one EPUB file and build its aligned parse response.

    Shared by the HTTP handler and the ``parse`` command. Holds no
    per-book state, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        config: ServerConfig = ServerConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.config = config
        self.metrics_hook = metrics_hook
        self._parser = EpubParser(config.parser, metrics_hook=metrics_hook)

    def parse_path(
        self,
        path: str | Path,
        *,
        file_name: str,
        file_size: int,
    ) -> ParseResponse:
        """
        Raises:
            ParseFatalError: If the container cannot be decoded, or strict
                mode turned a warning into a failure.
        """
        start = monotonic()
        self.metrics_hook.increment(names.PARSE_REQUESTS_TOTAL)
        try:
            book = self._parser.parse(path)
        except ParseFatalError as exc:
            self.metrics_hook.increment(names.PARSE_ERRORS_TOTAL)
            logger.error("Failed to parse %s: %s", file_name, exc)
            raise

        try:
            response = build_parse_response(
                book,
                file_name=file_name,
                file_size=file_size,
                chunking=self.config.parser.chunking,
                duplicate_policy=self.config.duplicate_anchor_policy,
                metrics_hook=self.metrics_hook,
            )
        finally:
            book.close()

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.PARSE_DURATION, elapsed_ms)
        logger.info("Parsed %s (%d bytes) in %.1fms", file_name, file_size, elapsed_ms)
        return response
