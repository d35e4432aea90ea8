# src/librium_parser/parsers/config.py

from dataclasses import dataclass, field

from librium_parser.chunking.chunking import ChunkingOptions


@dataclass(frozen=True)
class ParserConfig:
    """Configuration for the EPUB decoder.

    Immutable. Explicit. No magic defaults from environment.
    """

    strict: bool = False  # Any parse warning becomes fatal
    generate_toc: bool = True  # Synthesize a TOC from spine headings when missing
    chunking: ChunkingOptions = field(default_factory=ChunkingOptions)
