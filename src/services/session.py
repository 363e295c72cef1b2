"""Estimate session for SiteBudget.

Process-wide state of one analysis session: the current project estimate,
the on-screen toggle state and the IDLE/ANALYZING/RESULTS/ERROR status.
All mutations are applied one at a time and finish their recomputation
before returning. Nothing is persisted; ``reset`` replaces everything.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from config.errors import ErrorCode, SiteBudgetError
from models.estimate import ProjectEstimate
from models.line_item import LineItem, ManualItemInput
from models.upload import DocumentUpload
from services.analysis_service import DocumentAnalyzer, analyze_batch
from services.dual_unit_view import ToggleState, ViewRow, available_categories, build_view_rows, view_total
from services.export_synchronizer import ExportOutcome, export_project
from services.manual_insertion import add_manual_item

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle of an analysis session."""

    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    RESULTS = "RESULTS"
    ERROR = "ERROR"


def new_item_defaults(document_id: Optional[str]) -> Dict[str, Any]:
    """Initial values of the add-item form for the active document."""
    return {
        "document_id": document_id,
        "category": "General",
        "material": "",
        "quantity": 1,
        "unit": "pcs",
        "unit_price": 0,
        "notes": "",
    }


class EstimateSession:
    """Holds the single in-memory project estimate and its view state."""

    def __init__(self, analyzer: Optional[DocumentAnalyzer] = None):
        """Initialize EstimateSession.

        Args:
            analyzer: Optional analyzer used for every batch.
        """
        self._analyzer = analyzer
        self.project: Optional[ProjectEstimate] = None
        self.toggles = ToggleState()
        self.state = SessionState.IDLE
        self.error: Optional[str] = None

    def _require_project(self) -> ProjectEstimate:
        if self.project is None:
            raise SiteBudgetError(
                code=ErrorCode.INVALID_STATE,
                message="No project estimate available; analyze documents first",
                details={"state": self.state.value}
            )
        return self.project

    async def analyze(self, uploads: Sequence[DocumentUpload]) -> ProjectEstimate:
        """Run a batch and replace the project estimate wholesale.

        On failure no project estimate is kept; the error message is stored
        for display and the exception is re-raised.
        """
        self.state = SessionState.ANALYZING
        self.error = None
        self.project = None
        self.toggles = ToggleState()
        try:
            project = await analyze_batch(uploads, analyzer=self._analyzer)
        except Exception as e:
            self.state = SessionState.ERROR
            self.error = e.message if isinstance(e, SiteBudgetError) else str(e)
            logger.warning(
                "session_analysis_failed",
                code=getattr(e, "code", ErrorCode.ANALYSIS_FAILED),
                error=self.error
            )
            raise

        self.project = project
        self.state = SessionState.RESULTS
        return project

    def add_item(
        self,
        document_id: str,
        item: Union[ManualItemInput, Mapping[str, Any]],
    ) -> LineItem:
        """Prepend a manual item to a document (see add_manual_item)."""
        return add_manual_item(self._require_project(), document_id, item, self.toggles)

    def toggle_unit(self, document_id: str, index: int) -> bool:
        """Flip the secondary-unit flag of one row.

        Returns:
            The new flag value; rows without a secondary pair stay off.
        """
        project = self._require_project()
        document = project.get_document(document_id)
        if document is None or not 0 <= index < len(document.breakdown):
            raise SiteBudgetError(
                code=ErrorCode.INVALID_FIELD,
                message=f"No line item {index} in document {document_id}",
                details={"document_id": document_id, "index": index}
            )
        if not document.breakdown[index].has_secondary_unit:
            return False
        return self.toggles.toggle(document_id, index)

    def rows(
        self,
        document_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[ViewRow]:
        """Rows of the on-screen table for a tab and category filter."""
        return build_view_rows(self._require_project(), self.toggles, document_id, category)

    def footer_total(self, document_id: Optional[str] = None, category: Optional[str] = None) -> float:
        return view_total(self.rows(document_id, category))

    def categories(self, document_id: Optional[str] = None) -> List[str]:
        return available_categories(self.rows(document_id))

    def export(
        self,
        output_dir: Optional[str] = None,
        formats: Optional[Sequence[str]] = None,
    ) -> ExportOutcome:
        """Export the current view; failures come back as notices."""
        return export_project(self._require_project(), self.toggles, output_dir, formats)

    def reset(self) -> None:
        """Discard the project estimate and all view state."""
        self.project = None
        self.toggles = ToggleState()
        self.state = SessionState.IDLE
        self.error = None
        logger.info("session_reset")
