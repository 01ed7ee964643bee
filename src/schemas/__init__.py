"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import (
    AuthResponse,
    SessionResponse,
    TotpVerify,
    UserLogin,
    UserRegister,
    UserResponse,
)
from src.schemas.catalog import DishResponse, IngredientResponse, SizeResponse
from src.schemas.configurator import (
    DecisionResponse,
    DenialResponse,
    IngredientChangeRequest,
    SelectionPayload,
    SizeChangeRequest,
)
from src.schemas.order import OrderCreate, OrderIngredientResponse, OrderResponse

__all__ = [
    "UserRegister",
    "UserLogin",
    "TotpVerify",
    "AuthResponse",
    "UserResponse",
    "SessionResponse",
    "DishResponse",
    "IngredientResponse",
    "SizeResponse",
    "SelectionPayload",
    "IngredientChangeRequest",
    "SizeChangeRequest",
    "DenialResponse",
    "DecisionResponse",
    "OrderCreate",
    "OrderIngredientResponse",
    "OrderResponse",
]
