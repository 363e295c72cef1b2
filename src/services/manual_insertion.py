"""Manual line item insertion for SiteBudget.

Adds a user-authored item to the top of a document's breakdown and re-folds
the project. Items are only ever added here, never edited or removed.
"""

from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from config.errors import ErrorCode, ValidationError
from models.estimate import ProjectEstimate
from models.line_item import LineItem, ManualItemInput
from services.consistency_engine import recompute
from services.dual_unit_view import ToggleState

logger = structlog.get_logger(__name__)


def _build_line_item(item: Union[ManualItemInput, Mapping[str, Any]]) -> LineItem:
    try:
        if not isinstance(item, ManualItemInput):
            item = ManualItemInput.model_validate(dict(item))
        return item.to_line_item()
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(
            message=f"Invalid manual item: {first.get('msg', str(e))}",
            field=field,
            details={"errors": len(e.errors())}
        ) from e


def add_manual_item(
    project: ProjectEstimate,
    document_id: str,
    item: Union[ManualItemInput, Mapping[str, Any]],
    toggles: Optional[ToggleState] = None,
) -> LineItem:
    """Prepend a manual item to a document and recompute every total.

    Args:
        project: Project estimate to update.
        document_id: Target document identifier.
        item: User-authored item (model or raw form values).
        toggles: Toggle state to keep aligned with the shifted positions.

    Returns:
        The inserted LineItem.

    Raises:
        ValidationError: If the document does not exist or the item is
            invalid; the project is left untouched.
    """
    document = project.get_document(document_id)
    if document is None:
        raise ValidationError(
            message=f"Document not found: {document_id}",
            field="document_id",
            code=ErrorCode.DOCUMENT_NOT_FOUND
        )

    line_item = _build_line_item(item)

    document.breakdown.insert(0, line_item)
    if toggles is not None:
        toggles.shift_for_prepend(document_id)
    recompute(project, changed_document_id=document_id)

    logger.info(
        "manual_item_added",
        document_id=document_id,
        material=line_item.material,
        total_price=line_item.total_price,
        total_budget=document.total_budget,
        grand_total=project.grand_total,
    )
    return line_item
