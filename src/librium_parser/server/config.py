# src/librium_parser/server/config.py

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from librium_parser.alignment.block_ranges import DuplicatePolicy
from librium_parser.chunking.chunking import ChunkingOptions
from librium_parser.parsers.config import ParserConfig


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the parse service.

    Immutable. Explicit. No magic defaults from environment.
    """

    host: str = "127.0.0.1"
    port: int = 8081
    max_upload_bytes: int = 32 << 20  # Request body limit for /parse
    log_level: str = "INFO"
    duplicate_anchor_policy: DuplicatePolicy = "first"
    parser: ParserConfig = field(default_factory=ParserConfig)


def load_server_config(path: str | Path) -> ServerConfig:
    """Load a ServerConfig from a YAML file.

    Missing keys keep their defaults. Nested ``parser`` and
    ``parser.chunking`` mappings build the matching config objects.

    Raises:
        ValueError: If the document is not a mapping, carries unknown keys,
            or names an unknown chunking mode or duplicate policy.
        OSError: If the file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    server_data = _mapping(data, "config")
    parser_data = _mapping(server_data.pop("parser", None) or {}, "parser")
    chunking_data = _mapping(parser_data.pop("chunking", None) or {}, "parser.chunking")

    _reject_unknown(ServerConfig, server_data, "")
    _reject_unknown(ParserConfig, parser_data, "parser.")
    _reject_unknown(ChunkingOptions, chunking_data, "parser.chunking.")

    chunking = ChunkingOptions(**chunking_data)
    if chunking.mode not in ("size", "document"):
        raise ValueError(f"Unknown chunking mode: {chunking.mode}")
    if chunking.max_chars <= 0:
        raise ValueError("parser.chunking.max_chars must be > 0")

    config = ServerConfig(
        **server_data, parser=ParserConfig(**parser_data, chunking=chunking)
    )
    if config.duplicate_anchor_policy not in ("first", "duplicate"):
        raise ValueError(
            f"Unknown duplicate policy: {config.duplicate_anchor_policy}"
        )
    return config


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be a mapping, got {type(value).__name__}")
    return dict(value)


def _reject_unknown(cls: type, data: dict[str, Any], prefix: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(
            "Unknown config keys: " + ", ".join(prefix + key for key in unknown)
        )
