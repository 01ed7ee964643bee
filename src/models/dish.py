"""Dish model."""

from sqlalchemy import Column, Integer, String

from src.database import Base


class Dish(Base):
    """Base dish (pizza, pasta, salad). Sizes are configured globally."""

    __tablename__ = "dishes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
