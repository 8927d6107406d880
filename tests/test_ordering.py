from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from qrmenu.core.access import AccessContext
from qrmenu.core.config import OrderingConfig
from qrmenu.core.exceptions import (
    AccessDeniedError,
    InvalidTableError,
    InvalidTransitionError,
    ItemNotFound,
    ItemUnavailableError,
    OrderNotFound,
    ValidationFailedError,
)
from qrmenu.models import MenuItem, Order, OrderLine, OrderStatus, PaymentMethod, PaymentStatus, UserRole
from qrmenu.schemas import MenuItemUpdate, OrderLineCreate
from qrmenu.services.catalog import MenuCatalog
from qrmenu.services.ordering import OrderingEngine
from qrmenu.services.tables import TableRegistry


@pytest.fixture
def ordering(db):
    return OrderingEngine(db, OrderingConfig())


def cart(*pairs):
    return [OrderLineCreate(menu_item_id=item.id, quantity=qty) for item, qty in pairs]


async def order_count(db) -> int:
    return await db.scalar(select(func.count(Order.id)))


# =============================================================================
# PLACEMENT
# =============================================================================

async def test_place_order_prices_and_numbers(ordering, menu):
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 2)))

    assert order.order_number == "ORD-000001"
    assert order.status == OrderStatus.PLACED
    assert order.payment_status == PaymentStatus.PENDING
    assert order.payment_method == PaymentMethod.CASH
    assert order.subtotal == Decimal("16.00")
    assert order.tax == Decimal("1.60")
    assert order.total == Decimal("17.60")
    assert order.table.number == "T1"
    assert order.customer is None
    assert [(line.menu_item.name, line.quantity, line.price) for line in order.lines] == [
        ("Burger", 2, Decimal("8.00"))
    ]


async def test_order_numbers_are_sequential_and_unique(ordering, menu):
    numbers = [
        (await ordering.place_order(menu.table.id, cart((menu.fries, 1)))).order_number
        for _ in range(3)
    ]

    assert numbers == ["ORD-000001", "ORD-000002", "ORD-000003"]


async def test_notes_and_instructions_are_trimmed(ordering, menu):
    order = await ordering.place_order(
        menu.table.id,
        [
            OrderLineCreate(menu_item_id=menu.burger.id, quantity=1, note="  no onions "),
            OrderLineCreate(menu_item_id=menu.fries.id, quantity=1, note="   "),
        ],
        special_instructions="  birthday  ",
        payment_method=PaymentMethod.CARD,
    )

    assert [line.note for line in order.lines] == ["no onions", None]
    assert order.special_instructions == "birthday"
    assert order.payment_method == PaymentMethod.CARD


async def test_price_captured_at_order_time(db, ordering, menu):
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 2)))

    await MenuCatalog(db).update_item(menu.burger.id, MenuItemUpdate(price=Decimal("9.50")))
    reloaded = await ordering.get_order(order.id)

    assert reloaded.lines[0].price == Decimal("8.00")
    assert reloaded.total == Decimal("17.60")


async def test_popularity_grows_by_ordered_quantity(db, ordering, menu):
    await ordering.place_order(menu.table.id, cart((menu.burger, 2), (menu.fries, 1)))
    await ordering.place_order(menu.table.id, cart((menu.burger, 3)))

    burger = await db.get(MenuItem, menu.burger.id)
    await db.refresh(burger)
    fries = await db.get(MenuItem, menu.fries.id)
    await db.refresh(fries)
    assert burger.popularity_score == 5
    assert fries.popularity_score == 1


async def test_unavailable_item_persists_nothing(db, ordering, menu):
    await MenuCatalog(db).toggle_availability(menu.burger.id)

    with pytest.raises(ItemUnavailableError) as exc_info:
        await ordering.place_order(menu.table.id, cart((menu.fries, 1), (menu.burger, 1)))

    assert "Burger" in exc_info.value.message
    assert await order_count(db) == 0
    fries = await db.get(MenuItem, menu.fries.id)
    await db.refresh(fries)
    assert fries.popularity_score == 0


async def test_failure_after_flush_rolls_back_everything(db, ordering, menu, monkeypatch):
    increment = MenuCatalog.increment_popularity

    async def increment_first_then_fail(self, quantities):
        first_id = next(iter(quantities))
        await increment(self, {first_id: quantities[first_id]})
        raise RuntimeError("connection lost")

    monkeypatch.setattr(MenuCatalog, "increment_popularity", increment_first_then_fail)

    with pytest.raises(RuntimeError):
        await ordering.place_order(menu.table.id, cart((menu.burger, 2), (menu.fries, 1)))

    assert await order_count(db) == 0
    assert await db.scalar(select(func.count(OrderLine.id))) == 0
    scores = await db.execute(select(MenuItem.name, MenuItem.popularity_score).order_by(MenuItem.name))
    assert [tuple(row) for row in scores] == [("Burger", 0), ("Fries", 0)]


async def test_unknown_item(db, ordering, menu):
    with pytest.raises(ItemNotFound):
        await ordering.place_order(
            menu.table.id,
            [OrderLineCreate(menu_item_id=9999, quantity=1)],
        )
    assert await order_count(db) == 0


async def test_inactive_or_missing_table(db, ordering, menu):
    with pytest.raises(InvalidTableError) as exc_info:
        await ordering.place_order(9999, cart((menu.burger, 1)))
    assert exc_info.value.status_code == 400

    await TableRegistry(db).toggle_status(menu.table.id)
    with pytest.raises(InvalidTableError):
        await ordering.place_order(menu.table.id, cart((menu.burger, 1)))

    assert await order_count(db) == 0


async def test_empty_cart(ordering, menu):
    with pytest.raises(ValidationFailedError):
        await ordering.place_order(menu.table.id, [])


async def test_too_many_lines(db, menu):
    engine = OrderingEngine(db, OrderingConfig(max_order_items=2))

    with pytest.raises(ValidationFailedError):
        await engine.place_order(
            menu.table.id,
            cart((menu.burger, 1), (menu.fries, 1), (menu.burger, 1)),
        )


async def test_quantity_below_one(ordering, menu):
    line = OrderLineCreate.model_construct(menu_item_id=menu.burger.id, quantity=0, note=None)

    with pytest.raises(ValidationFailedError) as exc_info:
        await ordering.place_order(menu.table.id, [line])

    assert exc_info.value.errors[0]["field"] == "items.0.quantity"


async def test_customer_is_recorded(ordering, menu, customer):
    context = AccessContext(identity=customer.id, role=UserRole.CUSTOMER)

    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)), context=context)

    assert order.customer_id == customer.id
    assert order.customer.email == customer.email


# =============================================================================
# LIFECYCLE
# =============================================================================

async def test_kitchen_workflow(ordering, menu):
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 2)))
    ready_at = datetime(2030, 1, 1, 12, 30, tzinfo=timezone.utc)

    order = await ordering.update_status(order.id, OrderStatus.PREPARING, ready_at)
    assert order.estimated_ready_time.replace(tzinfo=None) == ready_at.replace(tzinfo=None)
    order = await ordering.update_status(order.id, OrderStatus.READY)
    order = await ordering.update_status(order.id, OrderStatus.SERVED)
    assert order.status == OrderStatus.SERVED

    with pytest.raises(InvalidTransitionError):
        await ordering.update_status(order.id, OrderStatus.CANCELED)

    assert (await ordering.get_order(order.id)).status == OrderStatus.SERVED


async def test_skipping_a_stage_is_rejected(ordering, menu):
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)))

    with pytest.raises(InvalidTransitionError):
        await ordering.update_status(order.id, OrderStatus.SERVED)

    assert (await ordering.get_order(order.id)).status == OrderStatus.PLACED


async def test_unknown_order(ordering):
    with pytest.raises(OrderNotFound):
        await ordering.update_status(12345, OrderStatus.PREPARING)


async def test_customer_cancels_own_order(ordering, menu, customer):
    context = AccessContext(identity=customer.id, role=UserRole.CUSTOMER)
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)), context=context)
    await ordering.update_status(order.id, OrderStatus.PREPARING)

    canceled = await ordering.cancel_by_customer(order.id, context)

    assert canceled.status == OrderStatus.CANCELED


async def test_customer_cannot_cancel_someone_elses_order(ordering, menu, customer, other_customer):
    owner = AccessContext(identity=customer.id, role=UserRole.CUSTOMER)
    stranger = AccessContext(identity=other_customer.id, role=UserRole.CUSTOMER)
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)), context=owner)
    guest_order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)))

    with pytest.raises(OrderNotFound):
        await ordering.cancel_by_customer(order.id, stranger)
    with pytest.raises(OrderNotFound):
        await ordering.cancel_by_customer(guest_order.id, owner)

    assert (await ordering.get_order(order.id)).status == OrderStatus.PLACED


async def test_customer_cannot_cancel_once_ready(ordering, menu, customer):
    context = AccessContext(identity=customer.id, role=UserRole.CUSTOMER)
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)), context=context)
    await ordering.update_status(order.id, OrderStatus.PREPARING)
    await ordering.update_status(order.id, OrderStatus.READY)

    with pytest.raises(InvalidTransitionError):
        await ordering.cancel_by_customer(order.id, context)


async def test_staff_cannot_use_customer_cancel(ordering, menu, staff):
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)))

    with pytest.raises(AccessDeniedError):
        await ordering.cancel_by_customer(order.id, AccessContext(staff.id, UserRole.STAFF))


# =============================================================================
# QUERIES
# =============================================================================

async def test_customers_only_read_their_own_orders(ordering, menu, customer, other_customer, staff):
    owner = AccessContext(identity=customer.id, role=UserRole.CUSTOMER)
    order = await ordering.place_order(menu.table.id, cart((menu.burger, 1)), context=owner)

    assert (await ordering.get_order_for(order.id, owner)).id == order.id
    assert (await ordering.get_order_for(order.id, AccessContext(staff.id, UserRole.STAFF))).id == order.id
    with pytest.raises(OrderNotFound):
        await ordering.get_order_for(order.id, AccessContext(other_customer.id, UserRole.CUSTOMER))

    guest_order = await ordering.place_order(menu.table.id, cart((menu.fries, 1)))
    with pytest.raises(OrderNotFound):
        await ordering.get_order_for(guest_order.id, owner)


async def test_list_orders_filters(ordering, menu, customer):
    context = AccessContext(identity=customer.id, role=UserRole.CUSTOMER)
    mine = await ordering.place_order(menu.table.id, cart((menu.burger, 1)), context=context)
    other = await ordering.place_order(menu.table.id, cart((menu.fries, 1)))
    await ordering.update_status(other.id, OrderStatus.PREPARING)

    orders, total = await ordering.list_orders(customer_id=customer.id)
    assert total == 1 and [o.id for o in orders] == [mine.id]

    orders, total = await ordering.list_orders(status=OrderStatus.PREPARING)
    assert total == 1 and orders[0].id == other.id

    orders, total = await ordering.list_orders(sort="total", descending=False)
    assert total == 2 and [o.id for o in orders] == [other.id, mine.id]
