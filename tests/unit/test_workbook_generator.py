"""Unit tests for the workbook generator."""

import io

import pytest
from openpyxl import load_workbook

from models.estimate import DocumentEstimate, ProjectEstimate
from models.line_item import LineItem
from services.consistency_engine import project_category_totals
from services.export_synchronizer import build_export_snapshot
from services.manual_insertion import add_manual_item
from services.workbook_generator import (
    CATEGORY_HEADERS,
    DETAIL_HEADERS,
    SUMMARY_SHEET,
    MAX_SHEET_TITLE,
    generate_workbook_bytes,
    generate_workbook_local,
    sheet_title,
)
from tests.fixtures.mock_draft_data import FLOOR_PLAN_TOTAL, SITE_PLAN_TOTAL


def _load(snapshot):
    return load_workbook(io.BytesIO(generate_workbook_bytes(snapshot)))


class TestSheetTitle:
    """Tests for sheet_title."""

    def test_invalid_characters_replaced(self):
        assert sheet_title("plan[1]:a/b?.pdf", set(), 1) == "plan_1__a_b_.pdf"

    def test_truncated(self):
        title = sheet_title("x" * 50, set(), 1)
        assert len(title) == MAX_SHEET_TITLE

    def test_duplicates_suffixed(self):
        used = {"summary"}
        assert sheet_title("plan.pdf", used, 1) == "plan.pdf"
        assert sheet_title("plan.pdf", used, 2) == "plan.pdf (2)"
        assert sheet_title("PLAN.pdf", used, 3) == "PLAN.pdf (3)"

    def test_duplicate_of_long_name_stays_within_limit(self):
        used = set()
        sheet_title("y" * 40, used, 1)
        title = sheet_title("y" * 40, used, 2)
        assert title.endswith(" (2)")
        assert len(title) == MAX_SHEET_TITLE

    def test_blank_name(self):
        assert sheet_title("***", set(), 4) == "___"
        assert sheet_title("", set(), 4) == "Sheet_4"

    def test_apostrophe_exposed_by_truncation_stripped(self):
        title = sheet_title("a" * 30 + "'s plan.pdf", set(), 1)
        assert title == "a" * 30

    def test_control_characters_removed(self):
        assert sheet_title("plan\x07.pdf", set(), 1) == "plan.pdf"


class TestWorkbookLayout:
    """Tests for workbook content."""

    def test_sheet_order(self, sample_project, toggles):
        wb = _load(build_export_snapshot(sample_project, toggles))
        assert wb.sheetnames == [SUMMARY_SHEET, "site_plan.pdf", "floor_plan.png"]

    def test_summary_sheet(self, sample_project, toggles):
        ws = _load(build_export_snapshot(sample_project, toggles))[SUMMARY_SHEET]

        assert ws["A1"].value == "SiteBudget Estimation Report"
        assert ws["B3"].value == "GHS"
        assert ws["A4"].value == "Grand Total"
        assert ws["B4"].value == SITE_PLAN_TOTAL + FLOOR_PLAN_TOTAL
        assert [ws.cell(row=7, column=col).value for col in (1, 2, 3)] == ["Document", "Project", "Subtotal"]
        assert ws["A8"].value == "site_plan.pdf"
        assert ws["B8"].value == "Boundary Wall - East Legon Plot"
        assert ws["C8"].value == SITE_PLAN_TOTAL
        assert ws["C9"].value == FLOOR_PLAN_TOTAL

    def test_summary_category_breakdown(self, sample_project, toggles):
        ws = _load(build_export_snapshot(sample_project, toggles))[SUMMARY_SHEET]
        expected = project_category_totals(sample_project)

        assert ws["A11"].value == "Category Breakdown"
        assert [ws.cell(row=12, column=col).value for col in (1, 2, 3)] == CATEGORY_HEADERS
        rows = range(13, 13 + len(expected))
        assert {ws.cell(row=row, column=1).value: ws.cell(row=row, column=3).value for row in rows} == expected
        assert sum(ws.cell(row=row, column=2).value for row in rows) == pytest.approx(1.0)

    def test_detail_sheet_primary_units(self, sample_project, toggles):
        ws = _load(build_export_snapshot(sample_project, toggles))["site_plan.pdf"]

        assert [cell.value for cell in ws[1]] == DETAIL_HEADERS
        assert [cell.value for cell in ws[3]][:6] == ["Concrete", "River Sand", 15, "m3", 150, 2250]
        assert ws["E5"].value == "Document Total"
        assert ws["F5"].value == SITE_PLAN_TOTAL

    def test_detail_sheet_reflects_toggle(self, sample_project, toggles):
        toggles.set("doc-1", 1, True)
        ws = _load(build_export_snapshot(sample_project, toggles))["site_plan.pdf"]

        assert ws["C3"].value == 19.6
        assert ws["D3"].value == "cubic yards"
        assert ws["E3"].value == pytest.approx(2250 / 19.6)
        # Amount column and document total are unchanged by the toggle
        assert ws["F3"].value == 2250
        assert ws["F5"].value == SITE_PLAN_TOTAL

    def test_manual_item_appears_first(self, sample_project, toggles):
        add_manual_item(sample_project, "doc-2", {"material": "Nails", "quantity": 2, "unitPrice": 3}, toggles)
        wb = _load(build_export_snapshot(sample_project, toggles))

        ws = wb["floor_plan.png"]
        assert ws["B2"].value == "Nails"
        assert ws["F6"].value == FLOOR_PLAN_TOTAL + 6
        assert wb[SUMMARY_SHEET]["B4"].value == SITE_PLAN_TOTAL + FLOOR_PLAN_TOTAL + 6

    def test_empty_document(self, toggles):
        project = ProjectEstimate.from_documents([
            DocumentEstimate(
                document_id="doc-1", file_name="blank.pdf", project_name="Blank",
                currency="GHS", market_region="Accra",
            )
        ], "GHS")
        ws = _load(build_export_snapshot(project, toggles))["blank.pdf"]

        assert ws["E2"].value == "Document Total"
        assert ws["F2"].value == 0


def _project_with(item: LineItem, file_name: str = "quote.pdf") -> ProjectEstimate:
    return ProjectEstimate.from_documents([
        DocumentEstimate(
            document_id="doc-1", file_name=file_name, project_name=file_name,
            currency="GHS", market_region="Accra", breakdown=[item],
        )
    ], "GHS")


class TestWorkbookTextCells:
    """Tests for text written from user or model supplied values."""

    def test_formula_like_text_stays_text(self, toggles):
        item = LineItem(
            category="@SUM(A1)", material="=1+1", quantity=1, unit="-2+3", unit_price=5,
            notes='=HYPERLINK("http://example.com","open")',
        )
        wb = _load(build_export_snapshot(_project_with(item, "=cmd.pdf"), toggles))
        ws = wb["=cmd.pdf"]

        for cell, text in (
            (ws["A2"], "@SUM(A1)"),
            (ws["B2"], "=1+1"),
            (ws["D2"], "-2+3"),
            (ws["G2"], '=HYPERLINK("http://example.com","open")'),
        ):
            assert cell.value == text
            assert cell.data_type == "s"
        assert wb[SUMMARY_SHEET]["A8"].value == "=cmd.pdf"
        assert wb[SUMMARY_SHEET]["A8"].data_type == "s"

    def test_control_characters_removed(self, toggles):
        item = LineItem(
            category="General", material="Bell\x07 wire", quantity=2, unit="rolls", unit_price=5,
            notes="line\x00break",
        )
        ws = _load(build_export_snapshot(_project_with(item), toggles))["quote.pdf"]

        assert ws["B2"].value == "Bell wire"
        assert ws["G2"].value == "linebreak"
        assert ws["F2"].value == 10


class TestGenerateWorkbookLocal:
    """Tests for writing the workbook to disk."""

    def test_writes_file(self, sample_project, toggles, tmp_path):
        output = tmp_path / "nested" / "estimate.xlsx"
        result = generate_workbook_local(build_export_snapshot(sample_project, toggles), str(output))

        assert output.exists()
        assert result.path == str(output.absolute())
        assert result.sheet_names == [SUMMARY_SHEET, "site_plan.pdf", "floor_plan.png"]
        assert result.file_size_bytes == output.stat().st_size
