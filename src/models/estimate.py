"""Estimate Pydantic models for SiteBudget.

Per-document and project-level estimates. Derived totals are folded by the
consistency engine on construction, so a freshly built record is always
consistent with its line items.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.line_item import CategoryTrend, LineItem


class DocumentEstimate(BaseModel):
    """Materials estimate for one uploaded document.

    ``breakdown`` keeps insertion order; manual additions are prepended.
    ``total_budget`` is the fold of every item's ``total_price``.
    """

    document_id: str = Field(..., alias="fileId", description="Stable document identifier")
    file_name: str = Field(..., alias="fileName", description="Display name of the source file")
    project_name: str = Field(..., alias="projectName", description="Descriptive project label")
    currency: str = Field(..., description="Currency code (e.g., 'GHS')")
    market_region: str = Field(..., alias="marketRegion", description="Market region label")
    breakdown: List[LineItem] = Field(default_factory=list, description="Line items")
    market_trends: List[CategoryTrend] = Field(
        default_factory=list, alias="marketTrends", description="Per-category price trends"
    )
    total_budget: float = Field(
        default=0.0, alias="totalBudget", description="Derived: sum of item totals"
    )

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def fold_total_budget(self) -> "DocumentEstimate":
        """Never trust a supplied total budget."""
        from services.consistency_engine import refold_document

        refold_document(self)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for JSON serialization."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ProjectEstimate(BaseModel):
    """Aggregate root: every document estimate of one analysis batch."""

    grand_total: float = Field(
        default=0.0, alias="grandTotal", description="Derived: sum of document budgets"
    )
    currency: str = Field(..., description="Project currency code")
    estimates: List[DocumentEstimate] = Field(
        default_factory=list, description="Document estimates, keyed by document_id"
    )

    class Config:
        populate_by_name = True

    @field_validator("estimates")
    @classmethod
    def unique_document_ids(cls, estimates: List[DocumentEstimate]) -> List[DocumentEstimate]:
        seen = set()
        for estimate in estimates:
            if estimate.document_id in seen:
                raise ValueError(f"Duplicate document id: {estimate.document_id}")
            seen.add(estimate.document_id)
        return estimates

    @model_validator(mode="after")
    def fold_grand_total(self) -> "ProjectEstimate":
        from services.consistency_engine import refold_project

        refold_project(self)
        return self

    @classmethod
    def from_documents(
        cls,
        documents: List[DocumentEstimate],
        default_currency: str
    ) -> "ProjectEstimate":
        """Build a project estimate; currency comes from the first document.

        Args:
            documents: Normalized document estimates, in batch order.
            default_currency: Currency used when there are no documents.

        Returns:
            ProjectEstimate with folded totals.
        """
        currency = documents[0].currency if documents else default_currency
        return cls(currency=currency, estimates=list(documents))

    def get_document(self, document_id: str) -> Optional[DocumentEstimate]:
        """Look up a document estimate by id."""
        for estimate in self.estimates:
            if estimate.document_id == document_id:
                return estimate
        return None

    @property
    def document_ids(self) -> List[str]:
        return [estimate.document_id for estimate in self.estimates]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for JSON serialization."""
        return self.model_dump(by_alias=True, exclude_none=True)
