"""
Ordering Engine

Validates a cart against the menu catalog and table registry, prices it
with the prices captured at placement, assigns the order number and drives
the status state machine.

Placement is all-or-nothing: the order row, its lines, its number and the
popularity increments of the ordered items are written in one transaction.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

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
from qrmenu.models import Order, OrderLine, OrderStatus, PaymentMethod, PaymentStatus
from qrmenu.schemas import OrderLineCreate
from qrmenu.services.catalog import MenuCatalog
from qrmenu.services.order_status import CUSTOMER_CANCELABLE, ensure_transition
from qrmenu.services.pricing import calculate_order_totals, to_money
from qrmenu.services.tables import TableRegistry

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Order.created_at,
    "total": Order.total,
    "status": Order.status,
    "order_number": Order.order_number,
}


class OrderingEngine:
    """
    Order placement, lookup and lifecycle.

    Args:
        db: Request-scoped session
        config: Frozen business rules (tax rate, limits, number format)
        catalog: Menu item resolution and popularity updates
        tables: Table resolution
    """

    def __init__(
        self,
        db: AsyncSession,
        config: OrderingConfig,
        catalog: Optional[MenuCatalog] = None,
        tables: Optional[TableRegistry] = None,
    ):
        self.db = db
        self.config = config
        self.catalog = catalog or MenuCatalog(db)
        self.tables = tables or TableRegistry(db)

    def format_order_number(self, sequence: int) -> str:
        return f"{self.config.order_number_prefix}{sequence:0{self.config.order_number_width}d}"

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    def _validate_lines(self, lines: Sequence[OrderLineCreate]) -> None:
        if not lines:
            raise ValidationFailedError(
                "Order must contain at least one item",
                errors=[{"field": "items", "message": "Order must contain at least one item"}],
            )
        if len(lines) > self.config.max_order_items:
            raise ValidationFailedError(
                f"Order cannot contain more than {self.config.max_order_items} items",
                errors=[{"field": "items", "message": "Too many items"}],
            )
        errors = [
            {"field": f"items.{i}.quantity", "message": "Quantity must be at least 1"}
            for i, line in enumerate(lines)
            if line.quantity < 1
        ]
        if errors:
            raise ValidationFailedError(errors=errors)

    async def place_order(
        self,
        table_id: int,
        lines: Sequence[OrderLineCreate],
        special_instructions: Optional[str] = None,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        context: Optional[AccessContext] = None,
    ) -> Order:
        """
        Create an order in status `placed`.

        Raises:
            ValidationFailedError: empty cart, too many lines, quantity < 1
            InvalidTableError: table missing or inactive
            ItemNotFound: a referenced menu item does not exist
            ItemUnavailableError: a referenced menu item is switched off
        """
        self._validate_lines(lines)

        table = await self.tables.resolve(table_id)
        if table is None or not table.is_active:
            logger.warning(f"Order rejected: table #{table_id} missing or inactive")
            raise InvalidTableError()

        items = await self.catalog.resolve_items(line.menu_item_id for line in lines)

        order_lines = []
        popularity: dict[int, int] = defaultdict(int)
        for line in lines:
            item = items.get(line.menu_item_id)
            if item is None:
                raise ItemNotFound(f"Menu item with ID {line.menu_item_id} not found")
            if not item.availability:
                logger.warning(f"Order rejected: '{item.name}' is unavailable")
                raise ItemUnavailableError(item.name)

            note = (line.note or "").strip() or None
            order_lines.append(OrderLine(
                menu_item_id=item.id,
                quantity=line.quantity,
                price=to_money(item.price),
                note=note,
            ))
            popularity[item.id] += line.quantity

        totals = calculate_order_totals(order_lines, self.config.tax_rate)

        order = Order(
            table_id=table.id,
            customer_id=context.identity if context else None,
            lines=order_lines,
            status=OrderStatus.PLACED,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            special_instructions=(special_instructions or "").strip() or None,
        )

        try:
            self.db.add(order)
            await self.db.flush()
            order.order_number = self.format_order_number(order.id)
            await self.catalog.increment_popularity(popularity)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Order {order.order_number} placed at table {table.number}: "
            f"{len(order_lines)} line(s), total {totals.total}"
        )
        return await self.get_order(order.id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_order(self, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFound()
        return order

    async def get_order_for(self, order_id: int, context: AccessContext) -> Order:
        """
        Customers may only read their own orders.

        Another customer's order, or a guest order, is reported as missing
        (OrderNotFound), the same as in `cancel_by_customer`.
        """
        order = await self.get_order(order_id)
        if context.is_customer and order.customer_id != context.identity:
            raise OrderNotFound()
        return order

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        table_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        descending: bool = True,
    ) -> tuple[Sequence[Order], int]:
        conditions = []
        if status is not None:
            conditions.append(Order.status == status)
        if table_id is not None:
            conditions.append(Order.table_id == table_id)
        if customer_id is not None:
            conditions.append(Order.customer_id == customer_id)

        column = SORT_FIELDS.get(sort, Order.created_at)
        ordering = (column.desc(), Order.id.desc()) if descending else (column.asc(), Order.id.asc())

        total = await self.db.scalar(select(func.count(Order.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Order)
            .where(*conditions)
            .order_by(*ordering)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def transition(
        self,
        order: Order,
        new_status: OrderStatus,
        estimated_ready_time: Optional[datetime] = None,
    ) -> Order:
        """
        Move an order to `new_status`.

        The write only applies while the stored status is still the one
        checked here; if another request changed it first, the order is
        reloaded and the change is rejected against its actual status.

        Raises:
            InvalidTransitionError: the pair is not in the transition table,
                or the status changed underneath this request
        """
        previous = order.status
        ensure_transition(previous, new_status)

        values = {"status": new_status}
        if estimated_ready_time is not None:
            values["estimated_ready_time"] = estimated_ready_time

        try:
            result = await self.db.execute(
                update(Order)
                .where(Order.id == order.id, Order.status == previous)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                current = await self.get_order(order.id)
                logger.warning(
                    f"Order {current.order_number}: {previous.value} -> {new_status.value} "
                    f"lost to a concurrent change, now {current.status.value}"
                )
                raise InvalidTransitionError(current.status.value, new_status.value)
            await self.db.commit()
        except InvalidTransitionError:
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Order {order.order_number}: {previous.value} -> {new_status.value}")
        return await self.get_order(order.id)

    async def update_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        estimated_ready_time: Optional[datetime] = None,
    ) -> Order:
        order = await self.get_order(order_id)
        return await self.transition(order, new_status, estimated_ready_time)

    async def cancel_by_customer(self, order_id: int, context: AccessContext) -> Order:
        """
        Customer-initiated cancellation.

        Only the customer who placed the order may cancel it, and only while
        it is placed or preparing. Other people's orders are reported as
        missing (OrderNotFound), the same as in `get_order_for`.
        """
        if not context.is_customer:
            raise AccessDeniedError()

        result = await self.db.execute(
            select(Order).where(
                Order.id == order_id,
                Order.customer_id == context.identity,
            )
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFound()

        if order.status not in CUSTOMER_CANCELABLE:
            logger.warning(
                f"Customer #{context.identity} tried to cancel {order.order_number} "
                f"in status {order.status.value}"
            )
            raise InvalidTransitionError(order.status.value, OrderStatus.CANCELED.value)

        return await self.transition(order, OrderStatus.CANCELED)
