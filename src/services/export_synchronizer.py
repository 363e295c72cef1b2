"""Export synchronizer for SiteBudget.

Captures a read-only snapshot of what the estimate table currently shows
and hands it to the PDF and workbook generators. Every row goes through the
shared dual-unit derivation with the live toggle state; subtotals are the
consistency engine's current ``total_budget``/``grand_total`` and category
totals, never recomputed here.

Rendering failures are non-fatal: they are logged and returned as notices,
and the project estimate is never modified.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import structlog

from config.settings import settings
from config.errors import ExportError, ErrorCode
from models.estimate import ProjectEstimate
from services.consistency_engine import project_category_totals
from services.dual_unit_view import ToggleState, ViewRow, document_rows

logger = structlog.get_logger(__name__)

FORMAT_PDF = "pdf"
FORMAT_XLSX = "xlsx"
ALL_FORMATS = [FORMAT_PDF, FORMAT_XLSX]


@dataclass(frozen=True)
class DocumentSection:
    """One document's block in an export."""

    document_id: str
    file_name: str
    project_name: str
    market_region: str
    rows: List[ViewRow]
    subtotal: float


@dataclass(frozen=True)
class ExportSnapshot:
    """Everything an export needs, frozen at the moment of export."""

    title: str
    currency: str
    grand_total: float
    generated_at: datetime
    sections: List[DocumentSection]
    category_totals: Dict[str, float] = field(default_factory=dict)

    @property
    def market_regions(self) -> List[str]:
        regions: List[str] = []
        for section in self.sections:
            if section.market_region not in regions:
                regions.append(section.market_region)
        return regions


@dataclass
class ExportNotice:
    """Non-fatal notification about one export artifact."""

    artifact: str
    success: bool
    path: Optional[str] = None
    message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class ExportOutcome:
    """Result of an export run; one notice per requested artifact."""

    notices: List[ExportNotice] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(notice.success for notice in self.notices)

    def paths(self) -> List[str]:
        return [notice.path for notice in self.notices if notice.success and notice.path]


def build_export_snapshot(
    project: ProjectEstimate,
    toggles: ToggleState,
    title: Optional[str] = None,
) -> ExportSnapshot:
    """Snapshot the currently displayed rows and the engine's totals.

    Args:
        project: Current project estimate (read only).
        toggles: Toggle state of the on-screen table.
        title: Report title (default from settings).

    Returns:
        ExportSnapshot.
    """
    sections = [
        DocumentSection(
            document_id=document.document_id,
            file_name=document.file_name,
            project_name=document.project_name,
            market_region=document.market_region,
            rows=document_rows(document, toggles),
            subtotal=document.total_budget,
        )
        for document in project.estimates
    ]
    return ExportSnapshot(
        title=title or settings.report_title,
        currency=project.currency,
        grand_total=project.grand_total,
        generated_at=datetime.now(),
        sections=sections,
        category_totals=project_category_totals(project),
    )


def _render_artifact(snapshot: ExportSnapshot, artifact: str, output_dir: Path) -> str:
    if artifact == FORMAT_PDF:
        from services.pdf_generator import generate_pdf_local

        return generate_pdf_local(snapshot, str(output_dir / "estimate_report.pdf")).storage_path
    if artifact == FORMAT_XLSX:
        from services.workbook_generator import generate_workbook_local

        return generate_workbook_local(snapshot, str(output_dir / "estimate.xlsx")).path
    raise ExportError(
        code=ErrorCode.EXPORT_FAILED,
        message=f"Unknown export format: {artifact}",
        artifact=artifact
    )


def export_project(
    project: ProjectEstimate,
    toggles: ToggleState,
    output_dir: Optional[str] = None,
    formats: Optional[Sequence[str]] = None,
) -> ExportOutcome:
    """Render the requested export artifacts from one shared snapshot.

    Args:
        project: Current project estimate (never modified).
        toggles: Toggle state of the on-screen table.
        output_dir: Destination directory (default from settings).
        formats: Artifacts to produce (default: pdf and xlsx).

    Returns:
        ExportOutcome with one notice per artifact.
    """
    start_time = time.perf_counter()
    snapshot = build_export_snapshot(project, toggles)
    destination = Path(output_dir or settings.export_dir)
    outcome = ExportOutcome()

    for artifact in (formats or ALL_FORMATS):
        try:
            path = _render_artifact(snapshot, artifact, destination)
            outcome.notices.append(ExportNotice(artifact=artifact, success=True, path=path))
        except ExportError as e:
            logger.warning("export_failed", artifact=artifact, code=e.code, error=e.message)
            outcome.notices.append(ExportNotice(
                artifact=artifact,
                success=False,
                message=e.message,
                error_code=e.code,
            ))

    logger.info(
        "export_completed",
        formats=[notice.artifact for notice in outcome.notices],
        succeeded=outcome.succeeded,
        grand_total=snapshot.grand_total,
        duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
    return outcome
