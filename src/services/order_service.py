"""Order lifecycle: submission with inventory reservation, and cancellation."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from src.models.enums import OrderSize, OrderStatus
from src.models.order import Order, OrderIngredient
from src.services.catalog import CatalogService
from src.services.constraints import (
    AlreadyCancelled,
    Denial,
    Forbidden,
    NotFound,
    OutOfStock,
    compute_total,
    validate_selection,
)
from src.services.inventory import InventoryTracker

logger = logging.getLogger(__name__)


class OrderError(Exception):
    """Business-rule failure of an order operation.

    Carries the denials so callers can report every reason, not just the first.
    """

    def __init__(self, denials: list[Denial]):
        self.denials = denials
        super().__init__("; ".join(denial.message for denial in denials))


class OrderRejectedError(OrderError):
    """The submitted selection cannot be confirmed."""


class OrderNotFoundError(OrderError):
    """The order does not exist."""


class OrderForbiddenError(OrderError):
    """The caller may not access or cancel the order."""


class OrderAlreadyCancelledError(OrderError):
    """The order was cancelled before."""


class OrderService:
    """Service for creating, listing and cancelling orders."""

    def __init__(
        self,
        db: Session,
        inventory: InventoryTracker | None = None,
        catalog: CatalogService | None = None,
    ):
        self.db = db
        self.inventory = inventory or InventoryTracker(db)
        self.catalog = catalog or CatalogService(db)

    def submit_order(
        self,
        user_id: int,
        dish_id: int,
        size: OrderSize,
        ingredient_ids: Iterable[int],
    ) -> Order:
        """Validate a selection against fresh stock, persist it, reserve stock.

        Raises OrderRejectedError with every violated rule when the selection
        is invalid; nothing is written in that case. If a reservation loses a
        race with a concurrent order, the new order is kept as cancelled, any
        stock it already took is given back, and OrderRejectedError names the
        ingredient that ran out.
        """
        size = OrderSize(size)
        ingredient_ids = list(dict.fromkeys(ingredient_ids))

        if self.catalog.get_dish(dish_id) is None:
            raise OrderRejectedError([NotFound("dish", dish_id)])

        catalog = self.catalog.snapshot()
        denials = validate_selection(catalog, size, ingredient_ids)
        if denials:
            logger.info(
                f"Rejected order for user {user_id}: "
                f"{', '.join(denial.code for denial in denials)}"
            )
            raise OrderRejectedError(denials)

        try:
            order = Order(
                user_id=user_id,
                dish_id=dish_id,
                size=size.value,
                total=compute_total(catalog, size, ingredient_ids),
                status=OrderStatus.CONFIRMED.value,
            )
            order.ingredients = [
                OrderIngredient(ingredient_id=ing_id, price=catalog.ingredients[ing_id].price)
                for ing_id in ingredient_ids
            ]
            self.db.add(order)
            self.db.flush()

            # Ascending id order so concurrent orders lock ingredient rows consistently
            reserved: list[int] = []
            for ing_id in sorted(ingredient_ids):
                if not self.inventory.reserve(ing_id, 1):
                    self._compensate(order, reserved)
                    self.db.commit()
                    logger.warning(
                        f"Order {order.id} cancelled: {catalog.name_of(ing_id)} ran out "
                        f"during confirmation"
                    )
                    raise OrderRejectedError([OutOfStock(catalog.name_of(ing_id))])
                reserved.append(ing_id)

            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(f"Order {order.id} confirmed for user {user_id} (total {order.total})")
        return order

    def _compensate(self, order: Order, reserved: list[int]) -> None:
        for ing_id in reserved:
            self.inventory.release(ing_id, 1)
        order.status = OrderStatus.CANCELLED.value
        order.cancelled_at = datetime.now(UTC)

    def cancel_order(self, user_id: int, order_id: int, second_factor_satisfied: bool) -> Order:
        """Cancel a confirmed order and give its ingredients back to stock.

        The status change is a conditional update on ``status = 'confirmed'``
        in the same transaction as the stock release, so cancelling twice
        never releases stock twice.
        """
        if not second_factor_satisfied:
            raise OrderForbiddenError(
                [Forbidden("Second factor verification required to cancel orders")]
            )

        order = self.get_order(user_id, order_id)
        if not OrderStatus(order.status).can_cancel():
            raise OrderAlreadyCancelledError([AlreadyCancelled(order_id)])

        try:
            updated = (
                self.db.query(Order)
                .filter(Order.id == order_id, Order.status == OrderStatus.CONFIRMED.value)
                .update(
                    {
                        Order.status: OrderStatus.CANCELLED.value,
                        Order.cancelled_at: datetime.now(UTC),
                    },
                    synchronize_session="fetch",
                )
            )
            if not updated:
                self.db.rollback()
                raise OrderAlreadyCancelledError([AlreadyCancelled(order_id)])

            for ing_id in sorted(order.ingredient_ids):
                self.inventory.release(ing_id, 1)

            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(f"Order {order_id} cancelled by user {user_id}")
        return order

    def get_order(self, user_id: int, order_id: int) -> Order:
        """Get one order, checking that it belongs to the user."""
        order = (
            self.db.query(Order)
            .options(
                selectinload(Order.ingredients).joinedload(OrderIngredient.ingredient),
                joinedload(Order.dish),
            )
            .filter(Order.id == order_id)
            .first()
        )
        if order is None:
            raise OrderNotFoundError([NotFound("order", order_id)])
        if order.user_id != user_id:
            raise OrderForbiddenError([Forbidden("Order belongs to another user")])
        return order

    def list_orders(self, user_id: int, status: OrderStatus | None = None) -> list[Order]:
        """List a user's orders, newest first, optionally filtered by status."""
        query = (
            self.db.query(Order)
            .options(
                selectinload(Order.ingredients).joinedload(OrderIngredient.ingredient),
                joinedload(Order.dish),
            )
            .filter(Order.user_id == user_id)
        )
        if status is not None:
            query = query.filter(Order.status == OrderStatus(status).value)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
