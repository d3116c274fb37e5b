"""
Utility modules for the itinerary pipeline.
"""

from itinerary_pipeline.config import LogLevel
from itinerary_pipeline.utils.error_handling import (
    APIError,
    PipelineError,
    ValidationError,
    classify_error,
    is_retryable,
    retrying,
    with_retry,
)
from itinerary_pipeline.utils.helpers import (
    extract_first_int,
    generate_session_id,
    safe_serialize,
    stable_hash,
    truncate_text,
    utc_now,
)
from itinerary_pipeline.utils.logging import AgentLogger, get_logger, setup_logging

__all__ = [
    "APIError",
    "AgentLogger",
    "LogLevel",
    "PipelineError",
    "ValidationError",
    "classify_error",
    "extract_first_int",
    "generate_session_id",
    "get_logger",
    "is_retryable",
    "retrying",
    "safe_serialize",
    "setup_logging",
    "stable_hash",
    "truncate_text",
    "utc_now",
    "with_retry",
]
