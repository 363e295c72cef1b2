"""Batch Logger for SiteBudget.

Configures structlog and provides highly visible, formatted banners for
analysis batches so that start/finish/failure stand out in log streams.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import structlog

logger = structlog.get_logger()

# Visual markers for different log types
BANNER_WIDTH = 80
BATCH_BANNER_CHAR = "█"
DOCUMENT_BANNER_CHAR = "─"
FAILURE_BANNER_CHAR = "!"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog with ISO timestamps and console rendering.

    Args:
        level: Log level name (default from settings).
    """
    if level is None:
        from config.settings import settings
        level = settings.log_level

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(str(level).upper())
        ),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_batch_start(document_names: List[str]) -> None:
    """Log batch start with prominent banner."""
    print("\n")
    print(BATCH_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(BATCH_BANNER_CHAR, "SITEBUDGET ANALYSIS STARTED"))
    print(BATCH_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Timestamp : {_timestamp()}")
    print(f"║ Documents : {len(document_names)}")
    for name in document_names:
        print(f"║   • {name}")
    print(BATCH_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info("batch_start_logged", document_count=len(document_names))


def log_document_analyzed(file_name: str, position: int, total: int, item_count: int) -> None:
    """Log a single document's analysis result."""
    print(_create_banner(DOCUMENT_BANNER_CHAR, f"✓ {position}/{total}: {file_name} ({item_count} items)"))


def log_batch_complete(
    document_count: int,
    grand_total: float,
    currency: str,
    duration_ms: int,
    total_tokens: int
) -> None:
    """Log batch completion with summary."""
    print("\n")
    print(BATCH_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(BATCH_BANNER_CHAR, "✓ ANALYSIS COMPLETED SUCCESSFULLY"))
    print(BATCH_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Timestamp    : {_timestamp()}")
    print(f"║ Documents    : {document_count}")
    print(f"║ Grand Total  : {currency} {grand_total:,.2f}")
    print(f"║ Duration     : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)")
    print(f"║ Total Tokens : {total_tokens:,}")
    print(BATCH_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "batch_complete_logged",
        document_count=document_count,
        grand_total=grand_total,
        duration_ms=duration_ms
    )


def log_batch_failed(
    failed_document: str,
    error: str,
    discarded_documents: List[str]
) -> None:
    """Log batch failure with details."""
    print("\n")
    print(FAILURE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(FAILURE_BANNER_CHAR, "✗ ANALYSIS FAILED"))
    print(FAILURE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Timestamp       : {_timestamp()}")
    print(f"║ Failed Document : {failed_document}")
    print(f"║ Error           : {error}")
    print(f"║ Discarded       : {', '.join(discarded_documents) if discarded_documents else 'None'}")
    print(FAILURE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.error(
        "batch_failed_logged",
        failed_document=failed_document,
        error=error,
        discarded_count=len(discarded_documents)
    )
