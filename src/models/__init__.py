"""SiteBudget data models."""

from models.line_item import CategoryTrend, LineItem, ManualItemInput, MarketTrend
from models.estimate import DocumentEstimate, ProjectEstimate
from models.upload import DocumentUpload

__all__ = [
    "CategoryTrend",
    "LineItem",
    "ManualItemInput",
    "MarketTrend",
    "DocumentEstimate",
    "ProjectEstimate",
    "DocumentUpload",
]
