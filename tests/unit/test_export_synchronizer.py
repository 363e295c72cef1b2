"""Unit tests for the export synchronizer."""

from pathlib import Path

import pytest
from unittest.mock import patch

from config.errors import ErrorCode, ExportError
from services.consistency_engine import project_category_totals
from services.export_synchronizer import (
    ALL_FORMATS,
    FORMAT_PDF,
    FORMAT_XLSX,
    build_export_snapshot,
    export_project,
)
from tests.fixtures.mock_draft_data import FLOOR_PLAN_TOTAL, SITE_PLAN_TOTAL


class TestBuildExportSnapshot:
    """Tests for build_export_snapshot."""

    def test_snapshot_totals_come_from_engine(self, sample_project, toggles):
        snapshot = build_export_snapshot(sample_project, toggles)

        assert snapshot.title == "SiteBudget Estimation Report"
        assert snapshot.currency == "GHS"
        assert snapshot.grand_total == sample_project.grand_total
        assert [section.subtotal for section in snapshot.sections] == [SITE_PLAN_TOTAL, FLOOR_PLAN_TOTAL]
        assert snapshot.market_regions == ["Ghana (Accra/Kumasi Avg)"]

    def test_snapshot_carries_category_totals(self, sample_project, toggles):
        snapshot = build_export_snapshot(sample_project, toggles)

        assert snapshot.category_totals == project_category_totals(sample_project)
        assert sum(snapshot.category_totals.values()) == pytest.approx(snapshot.grand_total)

    def test_snapshot_rows_follow_toggles(self, sample_project, toggles):
        toggles.set("doc-1", 1, True)
        snapshot = build_export_snapshot(sample_project, toggles)

        sand = snapshot.sections[0].rows[1]
        assert sand.display.quantity == 19.6
        assert sand.display.unit == "cubic yards"
        assert sand.total == 2250.0
        assert snapshot.sections[1].rows[1].display.unit == "m3"

    def test_snapshot_custom_title(self, sample_project, toggles):
        snapshot = build_export_snapshot(sample_project, toggles, title="Plot 12")
        assert snapshot.title == "Plot 12"

    def test_snapshot_does_not_modify_project(self, sample_project, toggles):
        before = sample_project.to_dict()
        toggles.set("doc-2", 1, True)
        build_export_snapshot(sample_project, toggles)
        assert sample_project.to_dict() == before


class TestExportProject:
    """Tests for export_project."""

    def test_writes_requested_artifacts(self, sample_project, toggles, tmp_path):
        with patch("services.pdf_generator._html_to_pdf", return_value=b"%PDF-1.7 /Type /Page"):
            outcome = export_project(sample_project, toggles, output_dir=str(tmp_path))

        assert outcome.succeeded is True
        assert [notice.artifact for notice in outcome.notices] == ALL_FORMATS
        paths = outcome.paths()
        assert Path(paths[0]).name == "estimate_report.pdf"
        assert Path(paths[1]).name == "estimate.xlsx"
        assert all(Path(path).exists() for path in paths)

    def test_default_output_dir_from_settings(self, sample_project, toggles, mock_settings):
        outcome = export_project(sample_project, toggles, formats=[FORMAT_XLSX])

        assert outcome.succeeded is True
        assert Path(outcome.paths()[0]).parent == Path(mock_settings.export_dir).absolute()

    def test_pdf_failure_is_non_fatal(self, sample_project, toggles, tmp_path):
        before = sample_project.to_dict()
        with patch("services.pdf_generator._html_to_pdf", side_effect=OSError("cannot load library 'pango'")):
            outcome = export_project(sample_project, toggles, output_dir=str(tmp_path))

        pdf_notice, xlsx_notice = outcome.notices
        assert outcome.succeeded is False
        assert pdf_notice.success is False
        assert pdf_notice.error_code == ErrorCode.PDF_RENDER_FAILED
        assert "pango" in pdf_notice.message
        assert xlsx_notice.success is True
        assert outcome.paths() == [xlsx_notice.path]
        assert sample_project.to_dict() == before

    def test_workbook_failure_is_non_fatal(self, sample_project, toggles, tmp_path):
        with patch("services.workbook_generator.build_workbook", side_effect=RuntimeError("boom")):
            outcome = export_project(sample_project, toggles, output_dir=str(tmp_path), formats=[FORMAT_XLSX])

        assert outcome.notices[0].success is False
        assert outcome.notices[0].error_code == ErrorCode.WORKBOOK_RENDER_FAILED

    def test_unknown_format(self, sample_project, toggles, tmp_path):
        outcome = export_project(sample_project, toggles, output_dir=str(tmp_path), formats=["docx"])

        assert outcome.notices[0].success is False
        assert outcome.notices[0].error_code == ErrorCode.EXPORT_FAILED

    def test_export_error_carries_artifact(self):
        error = ExportError(code=ErrorCode.EXPORT_FAILED, message="x", artifact=FORMAT_PDF)
        assert error.to_dict()["details"]["artifact"] == "pdf"
