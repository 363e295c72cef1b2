"""Utility modules for SiteBudget."""

from utils.batch_logger import (
    configure_logging,
    log_batch_start,
    log_batch_complete,
    log_batch_failed,
    log_document_analyzed,
)
from utils.formatting import (
    format_currency,
    format_quantity,
)

__all__ = [
    "configure_logging",
    "log_batch_start",
    "log_batch_complete",
    "log_batch_failed",
    "log_document_analyzed",
    "format_currency",
    "format_quantity",
]
