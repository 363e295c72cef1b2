"""Line item Pydantic models for SiteBudget.

This module defines the canonical material entry of a document estimate,
its optional secondary-unit representation, and the per-category market
trend shown alongside the breakdown.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class MarketTrend(str, Enum):
    """Direction of a category's recent market price."""

    UP = "UP"
    DOWN = "DOWN"
    STABLE = "STABLE"


# =============================================================================
# LINE ITEM MODEL
# =============================================================================


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class LineItem(BaseModel):
    """One material entry of a document breakdown.

    ``total_price`` is always derived as ``quantity * unit_price``; any
    supplied total is discarded on construction. The secondary
    quantity/unit pair is all-or-nothing.
    """

    category: str = Field(..., description="Material category (e.g., 'Masonry')")
    material: str = Field(..., description="Material description")
    quantity: float = Field(..., gt=0, allow_inf_nan=False, description="Primary quantity")
    unit: str = Field(..., description="Primary unit of measurement")
    unit_price: float = Field(
        ..., ge=0, allow_inf_nan=False, alias="unitPrice", description="Price per primary unit"
    )
    total_price: float = Field(
        default=0.0, allow_inf_nan=False, alias="totalPrice",
        description="Derived: quantity x unit_price"
    )
    notes: Optional[str] = Field(None, description="Estimator notes")
    secondary_quantity: Optional[float] = Field(
        None, ge=0, allow_inf_nan=False, alias="secondaryQuantity",
        description="Quantity expressed in the secondary unit"
    )
    secondary_unit: Optional[str] = Field(
        None, alias="secondaryUnit", description="Alternative unit (e.g., 'cubic yards')"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def derive_total_price(cls, data: Any) -> Any:
        """Discard any supplied total and recompute it; pair the secondary unit."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data.pop("totalPrice", None)
        data.pop("total_price", None)

        quantity = data.get("quantity")
        unit_price = data.get("unit_price", data.get("unitPrice"))
        try:
            data["total_price"] = float(quantity) * float(unit_price)
        except (TypeError, ValueError):
            # Field validation reports the bad quantity/unit_price
            pass

        secondary_quantity = data.get("secondary_quantity", data.get("secondaryQuantity"))
        secondary_unit = data.get("secondary_unit", data.get("secondaryUnit"))
        if _is_blank(secondary_quantity) or _is_blank(secondary_unit):
            for key in ("secondary_quantity", "secondaryQuantity", "secondary_unit", "secondaryUnit"):
                data.pop(key, None)
        return data

    @property
    def has_secondary_unit(self) -> bool:
        """True when a usable (non-zero) secondary pair is present."""
        return (
            self.secondary_quantity is not None
            and self.secondary_unit is not None
            and self.secondary_quantity > 0
        )

    def to_dict(self) -> dict:
        """Convert to camelCase dictionary for JSON serialization."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# MARKET TREND MODEL
# =============================================================================


class CategoryTrend(BaseModel):
    """Display-only market trend for one material category."""

    category: str = Field(..., description="Material category")
    trend: MarketTrend = Field(default=MarketTrend.STABLE, description="Price direction")
    percentage_change: Optional[float] = Field(
        None, alias="percentageChange", description="Recent change in percent"
    )
    price_history: List[float] = Field(
        default_factory=list,
        alias="priceHistory",
        description="Relative price index, oldest first"
    )

    class Config:
        populate_by_name = True


# =============================================================================
# MANUAL ITEM INPUT
# =============================================================================


class ManualItemInput(BaseModel):
    """A user-authored line item awaiting insertion into a breakdown."""

    category: str = Field(default="General", description="Material category")
    material: str = Field(..., description="Material description")
    quantity: float = Field(..., gt=0, allow_inf_nan=False, description="Primary quantity")
    unit: str = Field(default="pcs", description="Unit of measurement")
    unit_price: float = Field(
        ..., ge=0, allow_inf_nan=False, alias="unitPrice", description="Price per unit"
    )
    notes: Optional[str] = Field(None, description="Optional notes")

    class Config:
        populate_by_name = True

    @field_validator("material")
    @classmethod
    def material_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("material must not be blank")
        return value

    @field_validator("category", "unit")
    @classmethod
    def default_when_blank(cls, value: str, info) -> str:
        value = value.strip()
        if value:
            return value
        return "General" if info.field_name == "category" else "pcs"

    def to_line_item(self) -> LineItem:
        """Build the canonical line item (total derived by LineItem)."""
        return LineItem(
            category=self.category,
            material=self.material,
            quantity=self.quantity,
            unit=self.unit,
            unit_price=self.unit_price,
            notes=self.notes or None,
        )
