# src/librium_parser/server/app.py

import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from librium_parser.alignment.payloads import ErrorResponse, HealthResponse
from librium_parser.errors import ParseFatalError, UploadTooLargeError
from librium_parser.observability.base import MetricsHook, NoOpMetricsHook

from .config import ServerConfig
from .service import ParseService

logger = logging.getLogger(__name__)

_COPY_BUFFER = 1 << 16

# Framework errors are reported with fixed lowercase messages.
_ERROR_MESSAGES = {
    400: "invalid multipart form",
    405: "method not allowed",
}


def create_app(
    config: ServerConfig = ServerConfig(),
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> FastAPI:
    """Create the parse service application.

    Routes:
        GET  /health  liveness probe with the current UTC time
        POST /parse   multipart upload with the EPUB under ``file``
    """
    app = FastAPI(title="librium-parser")
    service = ParseService(config, metrics_hook=metrics_hook)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = _ERROR_MESSAGES.get(exc.status_code, str(exc.detail).lower())
        return _error(exc.status_code, message, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Rejected malformed upload: %s", exc.errors())
        return _error(400, "invalid multipart form")

    @app.get("/health")
    def health() -> JSONResponse:
        now = datetime.now(timezone.utc)
        payload = HealthResponse(status="ok", time=now.strftime("%Y-%m-%dT%H:%M:%SZ"))
        return JSONResponse(payload.to_wire())

    @app.post("/parse")
    def parse(file: UploadFile | None = File(None)) -> JSONResponse:
        if file is None:
            return _error(400, "missing file")

        file_name = file.filename or ""
        try:
            tmp_path, file_size = _buffer_upload(file.file, config.max_upload_bytes)
        except UploadTooLargeError as exc:
            logger.warning("Rejected upload %s: %s", file_name, exc)
            return _error(413, "file too large")

        try:
            response = service.parse_path(
                tmp_path, file_name=file_name, file_size=file_size
            )
        except ParseFatalError:
            return _error(500, "failed to parse epub")
        finally:
            tmp_path.unlink(missing_ok=True)
        return JSONResponse(response.to_wire())

    return app


def _buffer_upload(source: BinaryIO, limit: int) -> tuple[Path, int]:
    """Spool an upload to a temporary file the caller must remove."""
    with tempfile.NamedTemporaryFile(
        prefix="librium-", suffix=".epub", delete=False
    ) as tmp:
        path = Path(tmp.name)
        size = 0
        try:
            while buf := source.read(_COPY_BUFFER):
                size += len(buf)
                if size > limit:
                    raise UploadTooLargeError(size, limit)
                tmp.write(buf)
        except (UploadTooLargeError, OSError):
            tmp.close()
            path.unlink(missing_ok=True)
            raise
    return path, size


def _error(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=message).to_wire(), status_code=status_code, headers=headers
    )
