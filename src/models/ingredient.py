"""Ingredient model and constraint edge tables."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
)

from src.database import Base
from src.models.mixins import TimestampMixin

# "ingredient_id requires required_id to be present"
ingredient_requirements = Table(
    "ingredient_requirements",
    Base.metadata,
    Column("ingredient_id", Integer, ForeignKey("ingredients.id"), primary_key=True),
    Column("required_id", Integer, ForeignKey("ingredients.id"), primary_key=True),
    CheckConstraint("ingredient_id <> required_id", name="ck_requirement_not_self"),
)

# Unordered pair: always stored with the lower id first
ingredient_incompatibilities = Table(
    "ingredient_incompatibilities",
    Base.metadata,
    Column("ingredient_low_id", Integer, ForeignKey("ingredients.id"), primary_key=True),
    Column("ingredient_high_id", Integer, ForeignKey("ingredients.id"), primary_key=True),
    CheckConstraint("ingredient_low_id < ingredient_high_id", name="ck_incompatibility_ordered"),
)


class Ingredient(Base, TimestampMixin):
    """Ingredient with unit price and optional limited stock."""

    __tablename__ = "ingredients"
    __table_args__ = (CheckConstraint("stock IS NULL OR stock >= 0", name="ck_ingredient_stock"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    price = Column(Numeric(6, 2), nullable=False)
    stock = Column(Integer, nullable=True)  # NULL = unlimited


def incompatible_pair(first_id: int, second_id: int) -> dict[str, int]:
    """Build the row values for an incompatibility between two ingredients.

    The pair is unordered, so either argument order yields the same row.
    """
    if first_id == second_id:
        raise ValueError("An ingredient cannot be incompatible with itself")
    low, high = sorted((first_id, second_id))
    return {"ingredient_low_id": low, "ingredient_high_id": high}
