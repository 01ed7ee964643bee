"""Inventory tracking for limited-stock ingredients.

Stock lives in ``ingredients.stock`` (NULL = unlimited). Reservation is a
single conditional UPDATE, so two concurrent reservations of the last unit
cannot both succeed: the database serializes the row update and only one of
them still matches ``stock >= quantity``.
"""

import logging

from sqlalchemy.orm import Session

from src.models.ingredient import Ingredient

logger = logging.getLogger(__name__)


class IngredientNotFoundError(LookupError):
    """Raised when stock is adjusted for an ingredient that does not exist."""

    def __init__(self, ingredient_id: int):
        super().__init__(f"Ingredient {ingredient_id} not found")
        self.ingredient_id = ingredient_id


class InventoryTracker:
    """Reserve and release ingredient stock within the caller's transaction."""

    def __init__(self, db: Session):
        self.db = db

    def reserve(self, ingredient_id: int, quantity: int = 1) -> bool:
        """Take ``quantity`` units of an ingredient.

        Returns True for unlimited ingredients (nothing changes) and for
        limited ones with enough stock (decremented). Returns False, without
        changing anything, when stock is short.
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        updated = (
            self.db.query(Ingredient)
            .filter(
                Ingredient.id == ingredient_id,
                Ingredient.stock.is_not(None),
                Ingredient.stock >= quantity,
            )
            .update({Ingredient.stock: Ingredient.stock - quantity}, synchronize_session="fetch")
        )
        if updated:
            return True

        stock = self._current_stock(ingredient_id)
        if stock is None:
            return True

        logger.warning(
            f"Cannot reserve {quantity} of ingredient {ingredient_id}: only {stock} left"
        )
        return False

    def release(self, ingredient_id: int, quantity: int = 1) -> None:
        """Give back ``quantity`` units. Unlimited ingredients are left alone."""
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        updated = (
            self.db.query(Ingredient)
            .filter(Ingredient.id == ingredient_id, Ingredient.stock.is_not(None))
            .update({Ingredient.stock: Ingredient.stock + quantity}, synchronize_session="fetch")
        )
        if not updated:
            # Raises for unknown ids; unlimited stock needs no change
            self._current_stock(ingredient_id)

    def available(self, ingredient_id: int) -> int | None:
        """Current stock of an ingredient, or None when unlimited."""
        return self._current_stock(ingredient_id)

    def _current_stock(self, ingredient_id: int) -> int | None:
        row = (
            self.db.query(Ingredient.stock)
            .filter(Ingredient.id == ingredient_id)
            .first()
        )
        if row is None:
            raise IngredientNotFoundError(ingredient_id)
        return row.stock
