# src/librium_parser/observability/names.py

"""Standard metric names for librium-parser observability.

Use these constants instead of hardcoded strings for consistency
across the codebase.

Note: All duration metrics are in milliseconds by convention.
"""

# ============================================================================
# Parse Request Metrics
# ============================================================================

# Duration
PARSE_DURATION = "parse_duration"

# Counters
PARSE_REQUESTS_TOTAL = "parse_requests_total"
PARSE_ERRORS_TOTAL = "parse_errors_total"
PARSE_WARNINGS_TOTAL = "parse_warnings_total"


# ============================================================================
# Chunking Metrics
# ============================================================================

# Duration
CHUNKING_DURATION = "chunking_duration"

# Counters (chunks accumulate over time)
CHUNKING_CHUNKS_CREATED = "chunking_chunks_created"
CHUNKING_ERRORS_TOTAL = "chunking_errors_total"


# ============================================================================
# Alignment Metrics
# ============================================================================

# Counters
ANCHORS_RESOLVED_TOTAL = "anchors_resolved_total"
ANCHORS_UNRESOLVED_TOTAL = "anchors_unresolved_total"
ANCHORS_FALLBACK_TOTAL = "anchors_fallback_total"
BLOCK_DOCUMENTS_FAILED_TOTAL = "block_documents_failed_total"

# Gauges
SECTIONS_COUNT = "sections_count"
SECTION_BLOCKS_COUNT = "section_blocks_count"


# ============================================================================
# Resource Metrics
# ============================================================================

# Counters
IMAGES_FETCHED_TOTAL = "images_fetched_total"
IMAGES_FAILED_TOTAL = "images_failed_total"
