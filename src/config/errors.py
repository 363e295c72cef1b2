"""SiteBudget error handling.

Custom exceptions and error codes for analysis, estimate editing and export.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FIELD = "INVALID_FIELD"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"

    # Analysis Errors (2xxx)
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    UNPARSABLE_RESPONSE = "UNPARSABLE_RESPONSE"

    # LLM Errors (3xxx)
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"

    # Batch Errors (4xxx)
    BATCH_FAILED = "BATCH_FAILED"
    BATCH_EMPTY = "BATCH_EMPTY"

    # Export Errors (5xxx)
    EXPORT_FAILED = "EXPORT_FAILED"
    PDF_RENDER_FAILED = "PDF_RENDER_FAILED"
    WORKBOOK_RENDER_FAILED = "WORKBOOK_RENDER_FAILED"

    # Session Errors (6xxx)
    INVALID_STATE = "INVALID_STATE"


class SiteBudgetError(Exception):
    """Base exception for SiteBudget errors.

    Provides structured error information for callers and the CLI.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize SiteBudgetError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"SiteBudgetError(code={self.code!r}, message={self.message!r})"


class ValidationError(SiteBudgetError):
    """Validation-specific error (invalid manual input, unknown document)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict] = None,
        code: str = ErrorCode.VALIDATION_ERROR
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class AnalysisError(SiteBudgetError):
    """Failure of the analysis collaborator on a single document."""

    def __init__(
        self,
        code: str,
        message: str,
        document_id: str,
        file_name: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={
                **(details or {}),
                "document_id": document_id,
                "file_name": file_name
            }
        )
        self.document_id = document_id
        self.file_name = file_name


class BatchAnalysisError(SiteBudgetError):
    """Batch-level abort; every draft gathered so far has been discarded.

    Always retryable by re-running the whole batch.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        failed_document_id: Optional[str] = None,
        completed_count: int = 0,
        code: str = ErrorCode.BATCH_FAILED,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={
                **(details or {}),
                "failed_document_id": failed_document_id,
                "discarded_count": completed_count
            }
        )
        self.failed_document_id = failed_document_id
        self.completed_count = completed_count


class ExportError(SiteBudgetError):
    """Rendering failure for one export artifact."""

    def __init__(
        self,
        code: str,
        message: str,
        artifact: str,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "artifact": artifact}
        )
        self.artifact = artifact
