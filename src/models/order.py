"""Order and OrderIngredient models."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import OrderStatus
from src.models.mixins import TimestampMixin


class Order(Base, TimestampMixin):
    """Submitted order. The total is frozen at submission time."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    dish_id = Column(Integer, ForeignKey("dishes.id"), nullable=False)
    size = Column(String(10), nullable=False)  # "small" | "medium" | "large"
    total = Column(Numeric(8, 2), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.CONFIRMED.value, index=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", backref="orders")
    dish = relationship("Dish")
    ingredients = relationship(
        "OrderIngredient", back_populates="order", cascade="all, delete-orphan"
    )

    @property
    def ingredient_ids(self) -> list[int]:
        """IDs of the ingredients on this order."""
        return [line.ingredient_id for line in self.ingredients]


class OrderIngredient(Base):
    """Ingredient included in an order, with its price at submission time."""

    __tablename__ = "order_ingredients"

    order_id = Column(Integer, ForeignKey("orders.id"), primary_key=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id"), primary_key=True)
    price = Column(Numeric(6, 2), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="ingredients")
    ingredient = relationship("Ingredient")
