"""Catalog schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from src.models.enums import OrderSize


class DishResponse(BaseModel):
    """Dish response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class IngredientResponse(BaseModel):
    """Ingredient with its stock and constraints, referenced by name."""

    id: int
    name: str
    price: Decimal
    stock: int | None
    unlimited: bool
    requires: list[str]
    incompatible_with: list[str]


class SizeResponse(BaseModel):
    """Size pricing and ingredient cap."""

    size: OrderSize
    price: Decimal
    max_ingredients: int
