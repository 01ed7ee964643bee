"""Order configurator schemas."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from src.models.enums import OrderSize


class SelectionPayload(BaseModel):
    """In-progress order configuration held by the client."""

    dish_id: int | None = None
    size: OrderSize = OrderSize.MEDIUM
    ingredient_ids: list[int] = Field(default_factory=list)


class IngredientChangeRequest(BaseModel):
    """Add or remove one ingredient from the selection."""

    selection: SelectionPayload
    ingredient_id: int


class SizeChangeRequest(BaseModel):
    """Switch the selection to another size."""

    selection: SelectionPayload
    size: OrderSize


class DenialResponse(BaseModel):
    """Reason a change or order was refused."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class DecisionResponse(BaseModel):
    """Outcome of a configuration change.

    ``selection`` and ``total`` describe the selection after the change, or the
    unchanged selection when the change was denied.
    """

    allowed: bool
    changed_ids: list[int]
    selection: SelectionPayload
    total: Decimal
    reason: DenialResponse | None = None
