"""Consistency engine for SiteBudget.

Re-derives every total of a project estimate as a two-level fold:
line item totals -> document ``total_budget`` -> project ``grand_total``.

A change to any document always triggers a full re-fold of the project;
there is no partial-update bookkeeping. Arithmetic is plain float addition
in breakdown order with no rounding (rounding is a display concern).
"""

from typing import Dict, Iterable, Optional, TYPE_CHECKING

import structlog

from models.line_item import LineItem

if TYPE_CHECKING:
    from models.estimate import DocumentEstimate, ProjectEstimate

logger = structlog.get_logger(__name__)


def recompute_line_item(item: LineItem) -> LineItem:
    """Return ``item`` with ``total_price == quantity * unit_price``.

    Items built through the model constructor already satisfy this; an item
    that bypassed validation is rebuilt.
    """
    if item.total_price == item.quantity * item.unit_price:
        return item
    logger.warning(
        "line_item_total_drift",
        material=item.material,
        total_price=item.total_price,
        expected=item.quantity * item.unit_price,
    )
    return LineItem(**item.model_dump())


def fold_line_items(items: Iterable[LineItem]) -> float:
    """Sum item totals in breakdown order."""
    total = 0.0
    for item in items:
        total += item.total_price
    return total


def refold_document(document: "DocumentEstimate") -> float:
    """Recompute each item's total and fold them into ``total_budget``.

    A document with no line items folds to 0.

    Returns:
        The new ``total_budget``.
    """
    document.breakdown = [recompute_line_item(item) for item in document.breakdown]
    document.total_budget = fold_line_items(document.breakdown)
    return document.total_budget


def refold_project(project: "ProjectEstimate") -> float:
    """Re-fold every document, then fold document budgets into ``grand_total``.

    Returns:
        The new ``grand_total``.
    """
    grand_total = 0.0
    for document in project.estimates:
        grand_total += refold_document(document)
    project.grand_total = grand_total
    return grand_total


def recompute(
    project: "ProjectEstimate",
    changed_document_id: Optional[str] = None
) -> float:
    """Entry point after any change to the project's line items.

    Args:
        project: Project estimate to bring back to consistency.
        changed_document_id: Document that changed, for logging only; the
            whole project is always re-folded.

    Returns:
        The new ``grand_total``.
    """
    previous_total = project.grand_total
    grand_total = refold_project(project)

    logger.info(
        "project_recomputed",
        changed_document_id=changed_document_id,
        document_count=len(project.estimates),
        previous_grand_total=previous_total,
        grand_total=grand_total,
    )
    return grand_total


def category_totals(items: Iterable[LineItem]) -> Dict[str, float]:
    """Sum ``total_price`` per category, in first-seen category order."""
    totals: Dict[str, float] = {}
    for item in items:
        totals[item.category] = totals.get(item.category, 0.0) + item.total_price
    return totals


def project_category_totals(project: "ProjectEstimate") -> Dict[str, float]:
    """Category totals across every document of the project."""
    return category_totals(
        item for document in project.estimates for item in document.breakdown
    )
