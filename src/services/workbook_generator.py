"""
Excel Workbook Generator for SiteBudget.

Writes the estimate as a multi-sheet workbook:
- Summary: grand total, one subtotal row per document, then the
  per-category breakdown
- One detail sheet per document: category, material, quantity, unit,
  unit rate, total, notes

Cells hold raw numbers from the ExportSnapshot (currency formatting is a
cell number format), so totals match the screen exactly.
Text cells are written as literal strings with control characters
removed, so a material like "=1+1" is never evaluated as a formula.
"""

import io
import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, List, Set, Tuple

import structlog
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config.errors import ExportError, ErrorCode
from services.export_synchronizer import DocumentSection, ExportSnapshot

logger = structlog.get_logger(__name__)

SUMMARY_SHEET = "Summary"
SUMMARY_HEADERS = ["Document", "Project", "Subtotal"]
CATEGORY_HEADERS = ["Category", "Share", "Total"]
DETAIL_HEADERS = ["Category", "Material", "Quantity", "Unit", "Unit Rate", "Total", "Notes"]
MAX_SHEET_TITLE = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="DAA520", end_color="DAA520", fill_type="solid")
TOTAL_FONT = Font(bold=True)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin")
)


@dataclass
class WorkbookGenerationResult:
    """
    Result of workbook generation.

    Attributes:
        path: Absolute path of the written workbook
        sheet_names: Sheet titles in workbook order
        file_size_bytes: Size of the workbook in bytes
        generated_at: ISO timestamp when the workbook was generated
    """

    path: str
    sheet_names: List[str]
    file_size_bytes: int
    generated_at: str


def sheet_title(name: str, used: Set[str], position: int) -> str:
    """Excel-safe, unique sheet title (max 31 chars, no []:*?/\\, no edge apostrophes)."""
    cleaned = ILLEGAL_CHARACTERS_RE.sub("", _INVALID_SHEET_CHARS.sub("_", name))
    base = cleaned.strip().strip("'")[:MAX_SHEET_TITLE].strip().strip("'") or f"Sheet_{position}"
    title = base
    counter = 2
    while title.lower() in used:
        suffix = f" ({counter})"
        title = base[:MAX_SHEET_TITLE - len(suffix)] + suffix
        counter += 1
    used.add(title.lower())
    return title


def _money_format(currency: str) -> str:
    return f'"{currency}" #,##0.00'


def _write(ws, row: int, column: int, value: Any):
    """Write a cell; text is stored as a literal string, never a formula."""
    cell = ws.cell(row=row, column=column)
    if isinstance(value, str):
        cell.value = ILLEGAL_CHARACTERS_RE.sub("", value)
        cell.data_type = "s"
    else:
        cell.value = value
    return cell


def _style_header(ws, row: int, columns: int) -> None:
    for col in range(1, columns + 1):
        cell = ws.cell(row=row, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center")


def _create_summary_sheet(ws, snapshot: ExportSnapshot) -> None:
    """Create summary sheet: grand total, per-document subtotals, category totals."""
    money = _money_format(snapshot.currency)

    _write(ws, 1, 1, snapshot.title).font = Font(bold=True, size=14)
    ws["A2"] = "Date"
    ws["B2"] = snapshot.generated_at.strftime("%Y-%m-%d")
    ws["A3"] = "Currency"
    _write(ws, 3, 2, snapshot.currency)
    ws["A4"] = "Grand Total"
    ws["A4"].font = TOTAL_FONT
    ws["B4"] = snapshot.grand_total
    ws["B4"].number_format = money
    ws["B4"].font = TOTAL_FONT

    ws["A6"] = "File Estimates"
    ws["A6"].font = Font(bold=True, size=12)
    for col, header in enumerate(SUMMARY_HEADERS, 1):
        ws.cell(row=7, column=col, value=header)
    _style_header(ws, 7, len(SUMMARY_HEADERS))

    row = 8
    for section in snapshot.sections:
        _write(ws, row, 1, section.file_name)
        _write(ws, row, 2, section.project_name)
        _write(ws, row, 3, section.subtotal).number_format = money
        row += 1

    row += 1
    _write(ws, row, 1, "Category Breakdown").font = Font(bold=True, size=12)
    row += 1
    for col, header in enumerate(CATEGORY_HEADERS, 1):
        ws.cell(row=row, column=col, value=header)
    _style_header(ws, row, len(CATEGORY_HEADERS))
    row += 1
    for category, total in snapshot.category_totals.items():
        share = total / snapshot.grand_total if snapshot.grand_total else 0.0
        _write(ws, row, 1, category)
        _write(ws, row, 2, share).number_format = "0.0%"
        _write(ws, row, 3, total).number_format = money
        row += 1

    ws.column_dimensions["A"].width = 36
    ws.column_dimensions["B"].width = 40
    ws.column_dimensions["C"].width = 18


def _create_detail_sheet(ws, section: DocumentSection, currency: str) -> None:
    """Create one document's detail sheet from its view rows."""
    money = _money_format(currency)

    for col, header in enumerate(DETAIL_HEADERS, 1):
        ws.cell(row=1, column=col, value=header)
    _style_header(ws, 1, len(DETAIL_HEADERS))

    row = 2
    for view_row in section.rows:
        values = [
            view_row.item.category,
            view_row.item.material,
            view_row.display.quantity,
            view_row.display.unit,
            view_row.display.rate,
            view_row.total,
            view_row.item.notes,
        ]
        for col, value in enumerate(values, 1):
            _write(ws, row, col, value)
        ws.cell(row=row, column=5).number_format = money
        ws.cell(row=row, column=6).number_format = money
        row += 1

    label = ws.cell(row=row, column=5, value="Document Total")
    label.font = TOTAL_FONT
    total = ws.cell(row=row, column=6, value=section.subtotal)
    total.font = TOTAL_FONT
    total.number_format = money

    widths = [16, 36, 12, 14, 16, 18, 40]
    for idx, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"


def build_workbook(snapshot: ExportSnapshot) -> Workbook:
    """Build the workbook (summary sheet first, then one sheet per document)."""
    wb = Workbook()
    ws_summary = wb.active
    ws_summary.title = SUMMARY_SHEET
    _create_summary_sheet(ws_summary, snapshot)

    used = {SUMMARY_SHEET.lower()}
    for position, section in enumerate(snapshot.sections, 1):
        ws = wb.create_sheet(sheet_title(section.file_name, used, position))
        _create_detail_sheet(ws, section, snapshot.currency)
    return wb


def _render_workbook(snapshot: ExportSnapshot) -> Tuple[bytes, List[str]]:
    try:
        wb = build_workbook(snapshot)
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue(), wb.sheetnames
    except Exception as e:
        raise ExportError(
            code=ErrorCode.WORKBOOK_RENDER_FAILED,
            message=f"Workbook rendering failed: {e}",
            artifact="xlsx",
            details={"error_type": type(e).__name__}
        ) from e


def generate_workbook_bytes(snapshot: ExportSnapshot) -> bytes:
    """Render the workbook to bytes.

    Raises:
        ExportError: If openpyxl fails to build or serialise the workbook
    """
    workbook_bytes, _ = _render_workbook(snapshot)
    return workbook_bytes


def generate_workbook_local(snapshot: ExportSnapshot, output_path: str) -> WorkbookGenerationResult:
    """
    Generate the workbook and save it to a local file.

    Args:
        snapshot: Export snapshot
        output_path: Local file path to save the workbook

    Returns:
        WorkbookGenerationResult with local file path

    Raises:
        ExportError: If rendering or writing fails
    """
    start_time = time.perf_counter()
    workbook_bytes, sheet_names = _render_workbook(snapshot)

    output_file = Path(output_path)
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(workbook_bytes)
    except OSError as e:
        raise ExportError(
            code=ErrorCode.EXPORT_FAILED,
            message=f"Could not write {output_path}: {e}",
            artifact="xlsx"
        ) from e

    logger.info(
        "workbook_generated_local",
        output_path=output_path,
        sheet_count=len(sheet_names),
        file_size_kb=round(len(workbook_bytes) / 1024, 2),
        duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )

    return WorkbookGenerationResult(
        path=str(output_file.absolute()),
        sheet_names=sheet_names,
        file_size_bytes=len(workbook_bytes),
        generated_at=datetime.now().isoformat(),
    )
