"""SQLAlchemy models."""

from src.models.dish import Dish
from src.models.ingredient import (
    Ingredient,
    ingredient_incompatibilities,
    ingredient_requirements,
)
from src.models.order import Order, OrderIngredient
from src.models.user import User

__all__ = [
    "User",
    "Dish",
    "Ingredient",
    "ingredient_requirements",
    "ingredient_incompatibilities",
    "Order",
    "OrderIngredient",
]
