"""
Order Analytics

Read-only projections over the order ledger. Revenue always excludes
canceled orders; "today" starts at local midnight.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrmenu.models import MenuItem, Order, OrderLine, OrderStatus
from qrmenu.schemas import OrderAnalytics, TopItem
from qrmenu.services.order_status import PENDING_STATUSES
from qrmenu.services.pricing import to_money


def local_midnight(now: Optional[datetime] = None) -> datetime:
    """Start of the current local day, expressed in UTC."""
    now = (now or datetime.now()).astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0).astimezone(timezone.utc)


class OrderAnalyticsService:

    def __init__(self, db: AsyncSession, top_items_limit: int = 5):
        self.db = db
        self.top_items_limit = top_items_limit

    async def _count(self, *conditions) -> int:
        return await self.db.scalar(select(func.count(Order.id)).where(*conditions)) or 0

    async def _revenue(self, *conditions) -> Decimal:
        value = await self.db.scalar(
            select(func.sum(Order.total)).where(Order.status != OrderStatus.CANCELED, *conditions)
        )
        return to_money(value or 0)

    async def status_distribution(self) -> dict[str, int]:
        result = await self.db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )
        distribution = {status.value: 0 for status in OrderStatus}
        for status, count in result.all():
            distribution[OrderStatus(status).value] = count
        return distribution

    async def top_items(self, limit: Optional[int] = None) -> list[TopItem]:
        """Menu items ranked by total ordered quantity across all orders."""
        quantity = func.sum(OrderLine.quantity).label("total_quantity")
        result = await self.db.execute(
            select(OrderLine.menu_item_id, MenuItem.name, quantity)
            .join(MenuItem, MenuItem.id == OrderLine.menu_item_id)
            .group_by(OrderLine.menu_item_id, MenuItem.name)
            .order_by(quantity.desc(), MenuItem.name)
            .limit(limit or self.top_items_limit)
        )
        return [
            TopItem(menu_item_id=item_id, name=name, total_quantity=int(total))
            for item_id, name, total in result.all()
        ]

    async def overview(self, now: Optional[datetime] = None) -> OrderAnalytics:
        today_start = local_midnight(now)

        return OrderAnalytics(
            total_orders=await self._count(),
            today_orders=await self._count(Order.created_at >= today_start),
            pending_orders=await self._count(Order.status.in_(PENDING_STATUSES)),
            revenue_today=await self._revenue(Order.created_at >= today_start),
            revenue_total=await self._revenue(),
            status_distribution=await self.status_distribution(),
            top_items=await self.top_items(),
        )
