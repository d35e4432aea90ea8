# Alignment
from .alignment import (
    AnchorSet,
    ParseResponse,
    Section,
    build_parse_response,
    flatten_outline,
    resolve_resource_href,
)

# Chunking
from .chunking import Chunk, ChunkingOptions

# Errors
from .errors import LibriumError, ParseFatalError

# Observability
from .observability import MetricsHook, NoOpMetricsHook

# Parsers
from .parsers import Book, EpubBook, EpubParser, ParserConfig

__all__ = [
    # Alignment
    "AnchorSet",
    "ParseResponse",
    "Section",
    "build_parse_response",
    "flatten_outline",
    "resolve_resource_href",
    # Chunking
    "Chunk",
    "ChunkingOptions",
    # Errors
    "LibriumError",
    "ParseFatalError",
    # Observability
    "MetricsHook",
    "NoOpMetricsHook",
    # Parsers
    "Book",
    "EpubBook",
    "EpubParser",
    "ParserConfig",
]
