"""Order schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.models.enums import OrderSize, OrderStatus


class OrderCreate(BaseModel):
    """Submit an order."""

    dish_id: int
    size: OrderSize
    ingredient_ids: list[int] = Field(default_factory=list)


class OrderIngredientResponse(BaseModel):
    """Ingredient on an order, priced as it was at submission."""

    id: int
    name: str
    price: Decimal


class OrderResponse(BaseModel):
    """Order response."""

    id: int
    user_id: int
    dish_id: int
    dish_name: str
    size: OrderSize
    total: Decimal
    status: OrderStatus
    created_at: datetime
    cancelled_at: datetime | None = None
    ingredients: list[OrderIngredientResponse]

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=order.id,
            user_id=order.user_id,
            dish_id=order.dish_id,
            dish_name=order.dish.name,
            size=order.size,
            total=order.total,
            status=order.status,
            created_at=order.created_at,
            cancelled_at=order.cancelled_at,
            ingredients=[
                OrderIngredientResponse(
                    id=line.ingredient_id, name=line.ingredient.name, price=line.price
                )
                for line in order.ingredients
            ],
        )
