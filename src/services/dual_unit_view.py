"""Dual-unit view model for SiteBudget.

Derives what a line item currently shows (quantity, unit, rate) given the
per-item "show secondary unit" toggle. The derivation is shared by the
on-screen table, the PDF report and the workbook export; none of them may
compute display figures on their own.

The amount column is always the canonical ``total_price``. In secondary
mode the rate is back-derived as ``total_price / secondary_quantity``.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from models.estimate import DocumentEstimate, ProjectEstimate
from models.line_item import LineItem

ALL_CATEGORIES = "All"

ToggleKey = Tuple[str, int]


class DisplayTriple(NamedTuple):
    """Displayed quantity, unit and rate of a line item."""

    quantity: float
    unit: str
    rate: float


def derive_display(item: LineItem, show_secondary: bool) -> DisplayTriple:
    """Return the display triple for ``item`` without mutating it.

    Falls back to the primary representation when the flag is off, when no
    secondary pair exists, or when the secondary quantity is zero.
    """
    if show_secondary and item.has_secondary_unit:
        return DisplayTriple(
            quantity=item.secondary_quantity,
            unit=item.secondary_unit,
            rate=item.total_price / item.secondary_quantity,
        )
    return DisplayTriple(quantity=item.quantity, unit=item.unit, rate=item.unit_price)


class ToggleState:
    """Per-item secondary-unit flags keyed by ``(document_id, item_index)``.

    Owned by the view layer and never stored inside line items or exported
    as canonical data.
    """

    def __init__(self, flags: Optional[Dict[ToggleKey, bool]] = None):
        self._flags: Dict[ToggleKey, bool] = dict(flags or {})

    def is_toggled(self, document_id: str, index: int) -> bool:
        return self._flags.get((document_id, index), False)

    def set(self, document_id: str, index: int, value: bool) -> None:
        if value:
            self._flags[(document_id, index)] = True
        else:
            self._flags.pop((document_id, index), None)

    def toggle(self, document_id: str, index: int) -> bool:
        """Flip a flag and return its new value."""
        value = not self.is_toggled(document_id, index)
        self.set(document_id, index, value)
        return value

    def shift_for_prepend(self, document_id: str) -> None:
        """Move a document's flags down one position after an item is prepended.

        Keeps each flag attached to the item it was set on.
        """
        self._flags = {
            ((doc_id, index + 1) if doc_id == document_id else (doc_id, index)): value
            for (doc_id, index), value in self._flags.items()
        }

    def clear(self) -> None:
        self._flags.clear()

    def __len__(self) -> int:
        return len(self._flags)

    def __iter__(self) -> Iterator[ToggleKey]:
        return iter(sorted(self._flags))


@dataclass(frozen=True)
class ViewRow:
    """One row of the estimate table as currently displayed."""

    document_id: str
    file_name: str
    index: int
    item: LineItem
    display: DisplayTriple
    toggled: bool

    @property
    def total(self) -> float:
        """Amount column; identical in both unit modes."""
        return self.item.total_price

    @property
    def can_toggle(self) -> bool:
        return self.item.has_secondary_unit


def document_rows(document: DocumentEstimate, toggles: ToggleState) -> List[ViewRow]:
    """View rows of one document, in breakdown order."""
    rows = []
    for index, item in enumerate(document.breakdown):
        toggled = toggles.is_toggled(document.document_id, index)
        rows.append(ViewRow(
            document_id=document.document_id,
            file_name=document.file_name,
            index=index,
            item=item,
            display=derive_display(item, toggled),
            toggled=toggled,
        ))
    return rows


def build_view_rows(
    project: ProjectEstimate,
    toggles: ToggleState,
    document_id: Optional[str] = None,
    category: Optional[str] = None,
) -> List[ViewRow]:
    """Rows of the on-screen table.

    Args:
        project: Current project estimate.
        toggles: Current toggle state.
        document_id: Restrict to one document (None = summary of all).
        category: Restrict to one category (None or "All" = no filter).

    Returns:
        View rows in document order, then breakdown order.
    """
    rows: List[ViewRow] = []
    for document in project.estimates:
        if document_id is not None and document.document_id != document_id:
            continue
        rows.extend(document_rows(document, toggles))
    if category and category != ALL_CATEGORIES:
        rows = [row for row in rows if row.item.category == category]
    return rows


def view_total(rows: List[ViewRow]) -> float:
    """Footer total of the currently visible rows."""
    total = 0.0
    for row in rows:
        total += row.total
    return total


def available_categories(rows: List[ViewRow]) -> List[str]:
    """Category filter choices, "All" first, then first-seen order."""
    categories = [ALL_CATEGORIES]
    for row in rows:
        if row.item.category not in categories:
            categories.append(row.item.category)
    return categories
