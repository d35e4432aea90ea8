"""Exception hierarchy for librium-parser."""


class LibriumError(Exception):
    """Base exception for all librium-parser errors."""


class ParseFatalError(LibriumError):
    """The container could not be turned into a usable book."""

    def __init__(self, message: str, path: str = "") -> None:
        self.message = message
        self.path = path
        super().__init__(f"{message} ({path})" if path else message)


class InvalidUploadError(LibriumError):
    """The request did not carry a usable upload."""


class UploadTooLargeError(InvalidUploadError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"upload of {size} bytes exceeds limit of {limit} bytes")


class BlockLoadError(LibriumError):
    """A spine document's block list could not be produced."""

    def __init__(self, document_index: int, reason: str) -> None:
        self.document_index = document_index
        self.reason = reason
        super().__init__(f"failed to load blocks for document {document_index}: {reason}")


class ChunkingError(LibriumError):
    """The chunking pass over the content stream failed."""


class ResourceNotFoundError(LibriumError, KeyError):
    """No resource is stored under the requested path."""

    def __init__(self, href: str) -> None:
        self.href = href
        super().__init__(href)

    def __str__(self) -> str:
        return f"resource '{self.href}' not found"
