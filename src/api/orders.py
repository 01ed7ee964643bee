"""Order API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import (
    get_current_user,
    get_order_service,
    get_second_factor_satisfied,
)
from src.models.enums import OrderStatus
from src.models.user import User
from src.schemas.order import OrderCreate, OrderResponse
from src.services.order_service import (
    OrderError,
    OrderForbiddenError,
    OrderNotFoundError,
    OrderService,
)

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


def order_error_to_http(error: OrderError) -> HTTPException:
    """Map a business-rule failure to a 4xx response listing every reason."""
    if isinstance(error, OrderNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, OrderForbiddenError):
        status_code = status.HTTP_403_FORBIDDEN
    else:
        # Rejected selections and already-cancelled orders
        status_code = status.HTTP_409_CONFLICT

    return HTTPException(
        status_code=status_code,
        detail={
            "message": str(error),
            "reasons": [denial.to_dict() for denial in error.denials],
        },
    )


@router.get("", response_model=list[OrderResponse])
def list_orders(
    current_user: Annotated[User, Depends(get_current_user)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
):
    """List the current user's orders, newest first."""
    orders = order_service.list_orders(current_user.id, status=status_filter)
    return [OrderResponse.from_order(order) for order in orders]


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
):
    """Get one of the current user's orders."""
    try:
        order = order_service.get_order(current_user.id, order_id)
    except OrderError as e:
        raise order_error_to_http(e) from e
    return OrderResponse.from_order(order)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def submit_order(
    order_data: OrderCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
):
    """Submit an order. The selection is re-validated against current stock."""
    try:
        order = order_service.submit_order(
            current_user.id,
            order_data.dish_id,
            order_data.size,
            order_data.ingredient_ids,
        )
    except OrderError as e:
        raise order_error_to_http(e) from e
    return OrderResponse.from_order(order)


@router.delete("/{order_id}", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    second_factor_satisfied: Annotated[bool, Depends(get_second_factor_satisfied)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
):
    """Cancel an order and restore its ingredients' stock.

    Requires a token issued after TOTP verification.
    """
    try:
        order = order_service.cancel_order(current_user.id, order_id, second_factor_satisfied)
    except OrderError as e:
        raise order_error_to_http(e) from e
    return OrderResponse.from_order(order)
