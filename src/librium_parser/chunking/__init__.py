from .chunking import (
    Chunk,
    ChunkingOptions,
    ContentUnit,
    build_content_stream,
    chunk_stream,
    count_words,
)

__all__ = [
    "Chunk",
    "ChunkingOptions",
    "ContentUnit",
    "build_content_stream",
    "chunk_stream",
    "count_words",
]
