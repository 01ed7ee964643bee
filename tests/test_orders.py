"""Tests for the order lifecycle service."""

import random
import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from src.models.enums import OrderSize, OrderStatus
from src.models.ingredient import Ingredient
from src.models.order import Order
from src.services.auth import create_user
from src.services.catalog import CatalogService
from src.services.constraints import (
    AlreadyCancelled,
    MissingDependency,
    NotFound,
    OutOfStock,
    dependency_closure,
)
from src.services.inventory import InventoryTracker
from src.services.order_service import (
    OrderAlreadyCancelledError,
    OrderForbiddenError,
    OrderNotFoundError,
    OrderRejectedError,
    OrderService,
)


class RacingInventory(InventoryTracker):
    """Inventory where a concurrent order grabs an ingredient's last units first."""

    def __init__(self, db, contested_id: int):
        super().__init__(db)
        self.contested_id = contested_id
        self.raced = False

    def reserve(self, ingredient_id: int, quantity: int = 1) -> bool:
        if ingredient_id == self.contested_id and not self.raced:
            self.raced = True
            super().reserve(ingredient_id, self.available(ingredient_id))
        return super().reserve(ingredient_id, quantity)


class RecordingInventory(InventoryTracker):
    """Inventory that records the order in which ingredient rows are touched."""

    def __init__(self, db):
        super().__init__(db)
        self.reserved: list[int] = []
        self.released: list[int] = []

    def reserve(self, ingredient_id: int, quantity: int = 1) -> bool:
        self.reserved.append(ingredient_id)
        return super().reserve(ingredient_id, quantity)

    def release(self, ingredient_id: int, quantity: int = 1) -> None:
        self.released.append(ingredient_id)
        super().release(ingredient_id, quantity)


@pytest.fixture
def customer(db):
    return create_user(db, "carol", "testpass123")


@pytest.fixture
def other_customer(db):
    return create_user(db, "dave", "testpass123")


@pytest.fixture
def pizza(menu):
    return menu["dishes"]["Pizza"]


def stock_of(db, ingredient_id: int) -> int | None:
    return db.query(Ingredient.stock).filter(Ingredient.id == ingredient_id).scalar()


def test_submit_order(db, customer, pizza, ids):
    """A valid selection is confirmed, priced and reserved."""
    service = OrderService(db)

    order = service.submit_order(
        customer.id,
        pizza.id,
        OrderSize.MEDIUM,
        [ids["parmesan"], ids["mozzarella"], ids["tomatoes"], ids["olives"]],
    )

    assert order.status == OrderStatus.CONFIRMED.value
    assert order.total == Decimal("10.40")
    assert set(order.ingredient_ids) == {
        ids["parmesan"],
        ids["mozzarella"],
        ids["tomatoes"],
        ids["olives"],
    }
    assert stock_of(db, ids["mozzarella"]) == 2


def test_submit_rejects_every_violation(db, customer, pizza, ids):
    """Nothing is written when the selection breaks rules."""
    service = OrderService(db)

    with pytest.raises(OrderRejectedError) as exc_info:
        service.submit_order(customer.id, pizza.id, OrderSize.MEDIUM, [ids["parmesan"], 99999])

    assert exc_info.value.denials == [
        NotFound("ingredient", 99999),
        MissingDependency("parmesan", "mozzarella"),
    ]
    assert db.query(Order).count() == 0


def test_submit_unknown_dish(db, customer, ids):
    service = OrderService(db)

    with pytest.raises(OrderRejectedError) as exc_info:
        service.submit_order(customer.id, 99999, OrderSize.SMALL, [ids["carrots"]])

    assert exc_info.value.denials == [NotFound("dish", 99999)]


def test_last_unit_goes_to_one_order(db, customer, other_customer, pizza, menu, ids):
    """With one ham left, the second order is refused and stock ends at zero."""
    menu["ingredients"]["ham"].stock = 1
    db.commit()
    service = OrderService(db)

    service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["ham"]])
    with pytest.raises(OrderRejectedError) as exc_info:
        service.submit_order(other_customer.id, pizza.id, OrderSize.SMALL, [ids["ham"]])

    assert exc_info.value.denials == [OutOfStock("ham")]
    assert stock_of(db, ids["ham"]) == 0
    assert db.query(Order).filter(Order.status == OrderStatus.CONFIRMED.value).count() == 1


def test_lost_reservation_race_cancels_order(db, customer, pizza, menu, ids):
    """Losing the last unit mid-confirmation cancels the order and returns its stock."""
    menu["ingredients"]["tuna"].stock = 1
    db.commit()
    service = OrderService(db, inventory=RacingInventory(db, ids["tuna"]))

    with pytest.raises(OrderRejectedError) as exc_info:
        service.submit_order(
            customer.id,
            pizza.id,
            OrderSize.MEDIUM,
            [ids["tuna"], ids["olives"], ids["ham"]],
        )

    assert exc_info.value.denials == [OutOfStock("tuna")]
    order = db.query(Order).one()
    assert order.status == OrderStatus.CANCELLED.value
    assert order.cancelled_at is not None
    # Ham was reserved before tuna ran out and has been given back
    assert stock_of(db, ids["ham"]) == 2
    assert stock_of(db, ids["tuna"]) == 0


def test_concurrent_submits_for_last_unit(db, customer, other_customer, pizza, menu, ids):
    """Two orders racing for the last ham: one is confirmed, the other is out of stock."""
    pizza_id, ham_id = pizza.id, ids["ham"]
    user_ids = [customer.id, other_customer.id]
    menu["ingredients"]["ham"].stock = 1
    db.commit()
    barrier = threading.Barrier(len(user_ids))
    outcomes = []

    def submit(user_id):
        session = Session(bind=db.get_bind())
        try:
            barrier.wait()
            OrderService(session).submit_order(user_id, pizza_id, OrderSize.SMALL, [ham_id])
            outcomes.append("confirmed")
        except OrderRejectedError as e:
            outcomes.append(e.denials)
        except Exception as e:  # noqa: BLE001
            outcomes.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=submit, args=(user_id,)) for user_id in user_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert outcomes.count("confirmed") == 1
    assert [OutOfStock("ham")] in outcomes
    assert stock_of(db, ham_id) == 0
    assert db.query(Order).filter(Order.status == OrderStatus.CONFIRMED.value).count() == 1


def test_stock_rows_touched_in_ascending_id_order(db, customer, pizza, ids):
    """Reserve and release walk ingredients by id, whatever order they were sent in."""
    inventory = RecordingInventory(db)
    service = OrderService(db, inventory=inventory)
    requested = [ids["tuna"], ids["ham"], ids["olives"]]

    order = service.submit_order(customer.id, pizza.id, OrderSize.MEDIUM, requested)
    service.cancel_order(customer.id, order.id, second_factor_satisfied=True)

    assert inventory.reserved == sorted(requested)
    assert inventory.released == sorted(requested)


def test_cancel_restores_stock(db, customer, pizza, ids):
    """Cancelling gives every limited ingredient back exactly once."""
    service = OrderService(db)
    order = service.submit_order(
        customer.id,
        pizza.id,
        OrderSize.MEDIUM,
        [ids["parmesan"], ids["mozzarella"], ids["tomatoes"], ids["olives"]],
    )
    assert stock_of(db, ids["mozzarella"]) == 2

    cancelled = service.cancel_order(customer.id, order.id, second_factor_satisfied=True)

    assert cancelled.status == OrderStatus.CANCELLED.value
    assert stock_of(db, ids["mozzarella"]) == 3
    assert stock_of(db, ids["tomatoes"]) is None


def test_cancel_twice_is_rejected(db, customer, pizza, ids):
    """The second cancel fails and stock is released only once."""
    service = OrderService(db)
    order = service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["ham"]])
    service.cancel_order(customer.id, order.id, second_factor_satisfied=True)

    with pytest.raises(OrderAlreadyCancelledError) as exc_info:
        service.cancel_order(customer.id, order.id, second_factor_satisfied=True)

    assert exc_info.value.denials == [AlreadyCancelled(order.id)]
    assert stock_of(db, ids["ham"]) == 2


def test_cancel_requires_second_factor(db, customer, pizza, ids):
    service = OrderService(db)
    order = service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["ham"]])

    with pytest.raises(OrderForbiddenError):
        service.cancel_order(customer.id, order.id, second_factor_satisfied=False)

    assert stock_of(db, ids["ham"]) == 1
    db.refresh(order)
    assert order.status == OrderStatus.CONFIRMED.value


def test_cancel_other_users_order(db, customer, other_customer, pizza, ids):
    service = OrderService(db)
    order = service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["ham"]])

    with pytest.raises(OrderForbiddenError):
        service.cancel_order(other_customer.id, order.id, second_factor_satisfied=True)

    assert stock_of(db, ids["ham"]) == 1


def test_cancel_unknown_order(db, customer, menu):
    with pytest.raises(OrderNotFoundError):
        OrderService(db).cancel_order(customer.id, 99999, second_factor_satisfied=True)


def test_total_is_frozen(db, customer, pizza, menu, ids):
    """Later price changes do not affect placed orders."""
    service = OrderService(db)
    order = service.submit_order(customer.id, pizza.id, OrderSize.LARGE, [ids["carrots"]])

    menu["ingredients"]["carrots"].price = Decimal("5.00")
    db.commit()

    reloaded = service.get_order(customer.id, order.id)
    assert reloaded.total == Decimal("9.40")
    assert reloaded.ingredients[0].price == Decimal("0.40")


def test_list_orders(db, customer, other_customer, pizza, ids):
    """Orders are listed newest first and can be filtered by status."""
    service = OrderService(db)
    first = service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["carrots"]])
    second = service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["potatoes"]])
    service.submit_order(other_customer.id, pizza.id, OrderSize.SMALL, [ids["eggs"]])
    service.cancel_order(customer.id, first.id, second_factor_satisfied=True)

    orders = service.list_orders(customer.id)
    assert [o.id for o in orders] == [second.id, first.id]

    active = service.list_orders(customer.id, status=OrderStatus.CONFIRMED)
    assert [o.id for o in active] == [second.id]


def test_get_order_of_other_user(db, customer, other_customer, pizza, ids):
    service = OrderService(db)
    order = service.submit_order(customer.id, pizza.id, OrderSize.SMALL, [ids["carrots"]])

    with pytest.raises(OrderForbiddenError):
        service.get_order(other_customer.id, order.id)


def test_confirmed_orders_respect_constraints(db, customer, pizza, ids):
    """Random submissions never confirm an invalid order or drive stock negative."""
    service = OrderService(db)
    rng = random.Random(42)
    all_ids = list(ids.values())

    for _ in range(40):
        picked = rng.sample(all_ids, rng.randint(1, 6))
        size = rng.choice(list(OrderSize))
        try:
            order = service.submit_order(customer.id, pizza.id, size, picked)
        except OrderRejectedError:
            continue
        if rng.random() < 0.3:
            service.cancel_order(customer.id, order.id, second_factor_satisfied=True)

    catalog = CatalogService(db).snapshot()
    for order in service.list_orders(customer.id, status=OrderStatus.CONFIRMED):
        selected = set(order.ingredient_ids)
        for ing_id in selected:
            assert set(dependency_closure(catalog, ing_id)) <= selected
            for other_id in selected:
                assert not catalog.are_incompatible(ing_id, other_id)

    for stock in db.query(Ingredient.stock).all():
        assert stock.stock is None or stock.stock >= 0
