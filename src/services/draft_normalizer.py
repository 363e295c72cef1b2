"""Draft normalizer for SiteBudget.

The only consumer of the analysis collaborator's raw output. Turns an
untrusted, loosely-structured draft estimate into a DocumentEstimate whose
derived totals are recomputed from scratch.

Malformed fields are repaired with safe defaults and never escalated:
- a missing breakdown becomes an empty breakdown
- non-numeric quantities/prices count as missing
- supplied item totals are used only when quantity or unit price is missing
- the supplied project total is always ignored
- prices whose product overflows fall back to one unit at price 0
"""

import math
import re
from typing import Any, List, Mapping, Optional, Tuple

import structlog

from config.settings import settings
from models.estimate import DocumentEstimate
from models.line_item import CategoryTrend, LineItem, MarketTrend

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORY = "General"
DEFAULT_MATERIAL = "Unspecified material"
DEFAULT_UNIT = "pcs"
LUMP_SUM_UNIT = "lot"

_NUMBER_CLEANUP = re.compile(r"[,\s]")


def _coerce_number(value: Any) -> Optional[float]:
    """
    Parse a loosely-typed number.

    Handles:
    - ints/floats (bools are rejected)
    - numeric strings, including thousands separators ("1,500")

    Returns:
        The float value, or None if absent/unparseable/not finite
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        cleaned = _NUMBER_CLEANUP.sub("", value)
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _resolve_pricing(
    quantity: Optional[float],
    unit_price: Optional[float],
    supplied_total: Optional[float],
) -> Tuple[float, float, bool]:
    """Pick a (quantity, unit_price) pair whose product is the item total.

    Returns:
        (quantity, unit_price, lump_sum) where lump_sum means only a total
        was available and it was booked as one unit.
    """
    if quantity is not None and unit_price is not None:
        return quantity, unit_price, False
    if quantity is not None and supplied_total is not None:
        return quantity, supplied_total / quantity, False
    if unit_price is not None and unit_price > 0 and supplied_total is not None:
        return supplied_total / unit_price, unit_price, False
    if supplied_total is not None:
        return 1.0, supplied_total, True
    if unit_price is not None:
        return 1.0, unit_price, False
    if quantity is not None:
        return quantity, 0.0, False
    return 1.0, 0.0, False


def _is_representable(quantity: float, unit_price: float) -> bool:
    """True when the pair and its product are finite and quantity is positive."""
    return (
        math.isfinite(quantity)
        and quantity > 0
        and math.isfinite(unit_price)
        and math.isfinite(quantity * unit_price)
    )


def normalize_line_item(raw: Mapping[str, Any]) -> Tuple[LineItem, bool]:
    """Repair one raw line item.

    Args:
        raw: Collaborator line item object.

    Returns:
        (LineItem, repaired) where repaired is True if any field needed a
        default or the supplied total disagreed with quantity x unit price.
    """
    quantity = _coerce_number(raw.get("quantity"))
    if quantity is not None and quantity <= 0:
        quantity = None
    unit_price = _coerce_number(raw.get("unitPrice"))
    if unit_price is not None and unit_price < 0:
        unit_price = None
    supplied_total = _coerce_number(raw.get("totalPrice"))
    if supplied_total is not None and supplied_total <= 0:
        supplied_total = None

    resolved_quantity, resolved_price, lump_sum = _resolve_pricing(
        quantity, unit_price, supplied_total
    )
    repaired = quantity is None or unit_price is None or (
        supplied_total is not None and supplied_total != quantity * unit_price
    )
    if not _is_representable(resolved_quantity, resolved_price):
        # Overflowing or underflowing derivations fall back to the empty default
        logger.warning(
            "line_item_pricing_unrepresentable",
            material=raw.get("material"),
            quantity=resolved_quantity,
            unit_price=resolved_price,
        )
        resolved_quantity, resolved_price, lump_sum = 1.0, 0.0, False
        repaired = True

    secondary_quantity = _coerce_number(raw.get("secondaryQuantity"))
    secondary_unit = _optional_text(raw.get("secondaryUnit"))
    if secondary_quantity is None or secondary_quantity < 0 or secondary_unit is None:
        secondary_quantity, secondary_unit = None, None

    unit_default = LUMP_SUM_UNIT if lump_sum else DEFAULT_UNIT
    item = LineItem(
        category=_text(raw.get("category"), DEFAULT_CATEGORY),
        material=_text(raw.get("material"), DEFAULT_MATERIAL),
        quantity=resolved_quantity,
        unit=_text(raw.get("unit"), unit_default),
        unit_price=resolved_price,
        notes=_optional_text(raw.get("notes")),
        secondary_quantity=secondary_quantity,
        secondary_unit=secondary_unit,
    )
    return item, repaired


def normalize_trend(raw: Mapping[str, Any]) -> CategoryTrend:
    """Repair one market trend entry; unknown directions become STABLE."""
    trend_value = str(raw.get("trend") or "").strip().upper()
    try:
        trend = MarketTrend(trend_value)
    except ValueError:
        trend = MarketTrend.STABLE

    history_raw = raw.get("priceHistory")
    history: List[float] = []
    if isinstance(history_raw, list):
        history = [n for n in (_coerce_number(v) for v in history_raw) if n is not None]
    history = history[-settings.price_history_points:] if settings.price_history_points > 0 else []

    return CategoryTrend(
        category=_text(raw.get("category"), DEFAULT_CATEGORY),
        trend=trend,
        percentage_change=_coerce_number(raw.get("percentageChange")),
        price_history=history,
    )


def normalize_draft(
    draft: Any,
    document_id: str,
    file_name: str,
) -> DocumentEstimate:
    """Produce a consistent DocumentEstimate from a raw draft.

    Pure with respect to external state: nothing but the returned record is
    produced.

    Args:
        draft: Unvalidated JSON-shaped draft from the analysis collaborator.
        document_id: Identifier of the analysed document.
        file_name: Display name of the analysed document.

    Returns:
        DocumentEstimate with recomputed item totals and total budget.
    """
    if not isinstance(draft, Mapping):
        logger.warning("draft_not_an_object", document_id=document_id, draft_type=type(draft).__name__)
        draft = {}

    raw_breakdown = draft.get("breakdown")
    if not isinstance(raw_breakdown, list):
        raw_breakdown = []

    breakdown: List[LineItem] = []
    repaired_count = 0
    skipped_count = 0
    for raw_item in raw_breakdown:
        if not isinstance(raw_item, Mapping):
            skipped_count += 1
            continue
        item, repaired = normalize_line_item(raw_item)
        breakdown.append(item)
        repaired_count += int(repaired)

    raw_trends = draft.get("marketTrends")
    trends = [
        normalize_trend(raw_trend)
        for raw_trend in (raw_trends if isinstance(raw_trends, list) else [])
        if isinstance(raw_trend, Mapping)
    ]

    estimate = DocumentEstimate(
        document_id=document_id,
        file_name=file_name,
        project_name=_text(draft.get("projectName"), file_name),
        currency=_text(draft.get("currency"), settings.default_currency).upper(),
        market_region=_text(draft.get("marketRegion"), settings.default_market_region),
        breakdown=breakdown,
        market_trends=trends,
    )

    logger.info(
        "document_normalized",
        document_id=document_id,
        item_count=len(breakdown),
        repaired_count=repaired_count,
        skipped_count=skipped_count,
        total_budget=estimate.total_budget,
        supplied_total_budget=draft.get("totalBudget"),
    )
    return estimate
