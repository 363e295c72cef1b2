"""
PDF Report Generation Service for SiteBudget.

Generates the estimate report using WeasyPrint and Jinja2 templates.
The report opens with a summary page stating the grand total and each
document's subtotal, followed by one table per document (category,
material, quantity + unit, unit rate, total).

Architecture:
- Uses Jinja2 for HTML template rendering
- Uses WeasyPrint for HTML to PDF conversion
- Renders only from an ExportSnapshot, so every figure matches the screen
"""

from dataclasses import dataclass
from typing import Any, Dict
from datetime import datetime
from pathlib import Path
import time

import structlog
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from config.errors import ExportError, ErrorCode
from services.export_synchronizer import ExportSnapshot
from utils.formatting import format_currency, format_quantity

# Configure structlog logger
logger = structlog.get_logger(__name__)

# Template directory
TEMPLATE_DIR = Path(__file__).parent / "templates"
REPORT_TEMPLATE = "estimate_report.html"


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class PDFGenerationResult:
    """
    Result of PDF generation.

    Attributes:
        pdf_url: file:// URL of the written report
        storage_path: Absolute path of the written report
        page_count: Number of pages in the generated PDF
        file_size_bytes: Size of the PDF file in bytes
        generated_at: ISO timestamp when the PDF was generated
    """

    pdf_url: str
    storage_path: str
    page_count: int
    file_size_bytes: int
    generated_at: str


# =============================================================================
# Template Engine Setup
# =============================================================================


def _get_jinja_env(currency: str) -> Environment:
    """
    Create and configure Jinja2 environment.

    Args:
        currency: Currency code used by the ``money`` filter

    Returns:
        Configured Jinja2 Environment
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["money"] = lambda amount: format_currency(amount, currency)
    env.filters["qty"] = format_quantity
    return env


def _build_context(snapshot: ExportSnapshot) -> Dict[str, Any]:
    """Build the template context from a snapshot."""
    return {
        "title": snapshot.title,
        "report_date": snapshot.generated_at.strftime("%B %d, %Y"),
        "currency": snapshot.currency,
        "market_regions": snapshot.market_regions,
        "grand_total": snapshot.grand_total,
        "category_totals": [
            {
                "name": category,
                "total": total,
                "share": total / snapshot.grand_total if snapshot.grand_total else 0.0,
            }
            for category, total in snapshot.category_totals.items()
        ],
        "sections": [
            {
                "document_id": section.document_id,
                "file_name": section.file_name,
                "project_name": section.project_name,
                "subtotal": section.subtotal,
                "rows": [
                    {
                        "category": row.item.category,
                        "material": row.item.material,
                        "quantity": row.display.quantity,
                        "unit": row.display.unit,
                        "rate": row.display.rate,
                        "total": row.total,
                        "toggled": row.toggled,
                    }
                    for row in section.rows
                ],
            }
            for section in snapshot.sections
        ],
    }


# =============================================================================
# PDF Generation
# =============================================================================


def render_report_html(snapshot: ExportSnapshot) -> str:
    """
    Render HTML from Jinja2 template with snapshot data.

    Args:
        snapshot: Export snapshot

    Returns:
        Rendered HTML string

    Raises:
        ExportError: If the template cannot be rendered
    """
    try:
        template = _get_jinja_env(snapshot.currency).get_template(REPORT_TEMPLATE)
        return template.render(**_build_context(snapshot))
    except TemplateError as e:
        raise ExportError(
            code=ErrorCode.PDF_RENDER_FAILED,
            message=f"Report template failed: {e}",
            artifact="pdf"
        ) from e


def _html_to_pdf(html_content: str) -> bytes:
    """
    Convert HTML to PDF using WeasyPrint.

    Args:
        html_content: Rendered HTML string

    Returns:
        PDF content as bytes
    """
    from weasyprint import HTML
    from weasyprint.text.fonts import FontConfiguration

    font_config = FontConfiguration()
    html_doc = HTML(string=html_content, base_url=str(TEMPLATE_DIR))
    return html_doc.write_pdf(font_config=font_config)


def _count_pdf_pages(pdf_bytes: bytes) -> int:
    """
    Count the number of pages in a PDF.

    Args:
        pdf_bytes: PDF content as bytes

    Returns:
        Number of pages
    """
    # Rough count of /Type /Page objects
    content = pdf_bytes.decode("latin-1", errors="ignore")
    return content.count("/Type /Page") - content.count("/Type /Pages")


def generate_pdf_bytes(snapshot: ExportSnapshot) -> bytes:
    """
    Render the snapshot to PDF bytes.

    Raises:
        ExportError: If template rendering or WeasyPrint fails
    """
    html_content = render_report_html(snapshot)
    try:
        return _html_to_pdf(html_content)
    except Exception as e:
        # WeasyPrint may raise OSError at import when native libraries are missing
        raise ExportError(
            code=ErrorCode.PDF_RENDER_FAILED,
            message=f"PDF rendering failed: {e}",
            artifact="pdf",
            details={"error_type": type(e).__name__}
        ) from e


def generate_pdf_local(snapshot: ExportSnapshot, output_path: str) -> PDFGenerationResult:
    """
    Generate the PDF report and save it to a local file.

    Args:
        snapshot: Export snapshot
        output_path: Local file path to save PDF

    Returns:
        PDFGenerationResult with local file path

    Raises:
        ExportError: If rendering or writing fails
    """
    start_time = time.perf_counter()

    logger.info(
        "pdf_generation_started_local",
        output_path=output_path,
        sections_count=len(snapshot.sections),
    )

    pdf_bytes = generate_pdf_bytes(snapshot)

    output_file = Path(output_path)
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(pdf_bytes)
    except OSError as e:
        raise ExportError(
            code=ErrorCode.EXPORT_FAILED,
            message=f"Could not write {output_path}: {e}",
            artifact="pdf"
        ) from e

    page_count = max(_count_pdf_pages(pdf_bytes), 1)
    duration_ms = (time.perf_counter() - start_time) * 1000
    file_size_bytes = len(pdf_bytes)

    logger.info(
        "pdf_generated_local",
        output_path=output_path,
        page_count=page_count,
        file_size_kb=round(file_size_bytes / 1024, 2),
        duration_ms=round(duration_ms, 2),
    )

    return PDFGenerationResult(
        pdf_url=f"file://{output_file.absolute()}",
        storage_path=str(output_file.absolute()),
        page_count=page_count,
        file_size_bytes=file_size_bytes,
        generated_at=datetime.now().isoformat(),
    )
