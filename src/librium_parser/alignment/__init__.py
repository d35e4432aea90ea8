from .anchors import (
    AnchorSet,
    ChunkAnchor,
    SectionTarget,
    group_targets_by_document,
    resolve_block_targets,
    resolve_chunk_anchors,
)
from .block_ranges import BlockRange, build_section_blocks, partition_block_ranges
from .builder import build_parse_response
from .chunk_assignment import assign_chunks, build_chunk_payloads
from .outline import Section, flatten_outline, split_href_anchor
from .payloads import ParseResponse
from .resources import ImageCollector, ResourceEntry, resolve_resource_href

__all__ = [
    "AnchorSet",
    "BlockRange",
    "ChunkAnchor",
    "ImageCollector",
    "ParseResponse",
    "ResourceEntry",
    "Section",
    "SectionTarget",
    "assign_chunks",
    "build_chunk_payloads",
    "build_parse_response",
    "build_section_blocks",
    "flatten_outline",
    "group_targets_by_document",
    "partition_block_ranges",
    "resolve_block_targets",
    "resolve_chunk_anchors",
    "resolve_resource_href",
    "split_href_anchor",
]
