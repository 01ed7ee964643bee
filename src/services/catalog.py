"""Catalog service: dishes, ingredients, constraint edges and size pricing."""

import logging
from decimal import Decimal

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from src.models.dish import Dish
from src.models.enums import OrderSize
from src.models.ingredient import (
    Ingredient,
    incompatible_pair,
    ingredient_incompatibilities,
    ingredient_requirements,
)
from src.services.constraints import Catalog, IngredientSpec, SizeSpec, stock_from_column

logger = logging.getLogger(__name__)

# Same for every dish
SIZE_CONFIG: dict[OrderSize, SizeSpec] = {
    OrderSize.SMALL: SizeSpec(price=Decimal("5.00"), max_ingredients=3),
    OrderSize.MEDIUM: SizeSpec(price=Decimal("7.00"), max_ingredients=5),
    OrderSize.LARGE: SizeSpec(price=Decimal("9.00"), max_ingredients=7),
}


class CatalogService:
    """Service for reading the catalog and building constraint snapshots."""

    def __init__(self, db: Session):
        self.db = db

    def list_dishes(self) -> list[Dish]:
        return self.db.query(Dish).order_by(Dish.id).all()

    def get_dish(self, dish_id: int) -> Dish | None:
        return self.db.query(Dish).filter(Dish.id == dish_id).first()

    def size_config(self) -> dict[OrderSize, SizeSpec]:
        return dict(SIZE_CONFIG)

    def snapshot(self) -> Catalog:
        """Load a point-in-time catalog for constraint decisions.

        Rows already in the session are refreshed so stock reflects the
        database, not whatever this session loaded earlier.
        """
        ingredients = self.db.query(Ingredient).populate_existing().order_by(Ingredient.id).all()

        requires: dict[int, list[int]] = {}
        requirement_rows = self.db.execute(
            select(
                ingredient_requirements.c.ingredient_id,
                ingredient_requirements.c.required_id,
            ).order_by(ingredient_requirements.c.required_id)
        ).all()
        for ingredient_id, required_id in requirement_rows:
            requires.setdefault(ingredient_id, []).append(required_id)

        incompatibility_rows = self.db.execute(
            select(
                ingredient_incompatibilities.c.ingredient_low_id,
                ingredient_incompatibilities.c.ingredient_high_id,
            )
        ).all()

        specs = [
            IngredientSpec(
                id=ing.id,
                name=ing.name,
                price=Decimal(ing.price),
                stock=stock_from_column(ing.stock),
                requires=tuple(requires.get(ing.id, [])),
            )
            for ing in ingredients
        ]
        return Catalog.build(
            specs,
            incompatibilities=[(low, high) for low, high in incompatibility_rows],
            sizes=SIZE_CONFIG,
        )

    def add_requirement(self, ingredient_id: int, required_id: int) -> None:
        """Record that one ingredient requires another. Caller commits."""
        self.db.execute(
            insert(ingredient_requirements).values(
                ingredient_id=ingredient_id, required_id=required_id
            )
        )
        logger.info(f"Ingredient {ingredient_id} now requires {required_id}")

    def add_incompatibility(self, first_id: int, second_id: int) -> None:
        """Record that two ingredients cannot be combined. Caller commits.

        Adding the same pair twice, in either order, is a no-op.
        """
        values = incompatible_pair(first_id, second_id)
        existing = self.db.execute(
            select(ingredient_incompatibilities).where(
                ingredient_incompatibilities.c.ingredient_low_id == values["ingredient_low_id"],
                ingredient_incompatibilities.c.ingredient_high_id == values["ingredient_high_id"],
            )
        ).first()
        if existing:
            return
        self.db.execute(insert(ingredient_incompatibilities).values(**values))
        logger.info(f"Ingredients {first_id} and {second_id} marked incompatible")
