"""
Order endpoints.

Anyone at a table may place an order (guests included). Customers see and
cancel their own orders; staff drive the kitchen workflow; admins read
analytics.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from qrmenu.models import OrderStatus, User, UserRole
from qrmenu.routers.deps import (
    access_context,
    get_current_user,
    get_optional_user,
    get_order_analytics,
    get_ordering_engine,
    require_admin,
    require_roles,
    require_staff,
)
from qrmenu.schemas import (
    Envelope,
    OrderAnalytics,
    OrderCreate,
    OrderOut,
    OrderStatusUpdate,
    Page,
    Pagination,
)
from qrmenu.services.analytics import OrderAnalyticsService
from qrmenu.services.ordering import OrderingEngine
from qrmenu.tasks import queue_order_export

router = APIRouter(prefix="/orders", tags=["Orders"])

SortField = Literal["created_at", "total", "status", "order_number"]


def _page(orders, page: int, limit: int, total: int) -> Page[OrderOut]:
    return Page(
        items=[OrderOut.model_validate(o) for o in orders],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=Envelope[OrderOut],
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
)
async def create_order(
    data: OrderCreate,
    engine: OrderingEngine = Depends(get_ordering_engine),
    user: Optional[User] = Depends(get_optional_user),
) -> Envelope[OrderOut]:
    order = await engine.place_order(
        table_id=data.table_id,
        lines=data.items,
        special_instructions=data.special_instructions,
        payment_method=data.payment_method,
        context=access_context(user),
    )
    queue_order_export(order)
    return Envelope(message="Order placed successfully", data=OrderOut.model_validate(order))


@router.get(
    "/analytics",
    response_model=Envelope[OrderAnalytics],
    dependencies=[Depends(require_admin)],
)
async def order_analytics(
    analytics: OrderAnalyticsService = Depends(get_order_analytics),
) -> Envelope[OrderAnalytics]:
    return Envelope(data=await analytics.overview())


# =============================================================================
# CUSTOMER
# =============================================================================

@router.get("/me", response_model=Envelope[Page[OrderOut]])
async def my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    engine: OrderingEngine = Depends(get_ordering_engine),
    user: User = Depends(get_current_user),
) -> Envelope[Page[OrderOut]]:
    orders, total = await engine.list_orders(
        status=status_filter,
        customer_id=user.id,
        page=page,
        limit=limit,
    )
    return Envelope(data=_page(orders, page, limit, total))


@router.get("/me/{order_id}", response_model=Envelope[OrderOut])
async def my_order(
    order_id: int,
    engine: OrderingEngine = Depends(get_ordering_engine),
    user: User = Depends(get_current_user),
) -> Envelope[OrderOut]:
    order = await engine.get_order_for(order_id, access_context(user))
    return Envelope(data=OrderOut.model_validate(order))


@router.patch("/me/{order_id}/cancel", response_model=Envelope[OrderOut])
async def cancel_my_order(
    order_id: int,
    engine: OrderingEngine = Depends(get_ordering_engine),
    user: User = Depends(require_roles(UserRole.CUSTOMER)),
) -> Envelope[OrderOut]:
    order = await engine.cancel_by_customer(order_id, access_context(user))
    return Envelope(message="Order cancelled successfully", data=OrderOut.model_validate(order))


# =============================================================================
# STAFF
# =============================================================================

@router.get("", response_model=Envelope[Page[OrderOut]], dependencies=[Depends(require_staff)])
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    table_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: SortField = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    engine: OrderingEngine = Depends(get_ordering_engine),
) -> Envelope[Page[OrderOut]]:
    orders, total = await engine.list_orders(
        status=status_filter,
        table_id=table_id,
        page=page,
        limit=limit,
        sort=sort,
        descending=order == "desc",
    )
    return Envelope(data=_page(orders, page, limit, total))


@router.get("/{order_id}", response_model=Envelope[OrderOut], dependencies=[Depends(require_staff)])
async def get_order(
    order_id: int,
    engine: OrderingEngine = Depends(get_ordering_engine),
) -> Envelope[OrderOut]:
    return Envelope(data=OrderOut.model_validate(await engine.get_order(order_id)))


@router.patch(
    "/{order_id}/status",
    response_model=Envelope[OrderOut],
    dependencies=[Depends(require_staff)],
)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    engine: OrderingEngine = Depends(get_ordering_engine),
) -> Envelope[OrderOut]:
    order = await engine.update_status(order_id, data.status, data.estimated_ready_time)
    return Envelope(
        message=f"Order status updated to {order.status.value}",
        data=OrderOut.model_validate(order),
    )
