"""
Menu endpoints.

Reads are public; writes need an admin, availability toggles need staff.
"""

from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from qrmenu.routers.deps import get_catalog, get_table_registry, require_admin, require_staff
from qrmenu.schemas import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    Envelope,
    MenuAnalytics,
    MenuItemCreate,
    MenuItemOut,
    MenuItemUpdate,
    Page,
    Pagination,
    TableMenu,
    TablePublic,
)
from qrmenu.services.catalog import MenuCatalog
from qrmenu.services.tables import TableRegistry

router = APIRouter(prefix="/menu", tags=["Menu"])

SortOption = Literal["name", "price-asc", "price-desc", "popularity"]


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/categories", response_model=Envelope[List[CategoryOut]])
async def list_categories(
    include_inactive: bool = Query(False),
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[List[CategoryOut]]:
    categories = await catalog.list_categories(include_inactive=include_inactive)
    return Envelope(data=[CategoryOut.model_validate(c) for c in categories])


@router.post(
    "/categories",
    response_model=Envelope[CategoryOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_category(
    data: CategoryCreate,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[CategoryOut]:
    category = await catalog.create_category(data)
    return Envelope(message="Category created successfully", data=CategoryOut.model_validate(category))


@router.put(
    "/categories/{category_id}",
    response_model=Envelope[CategoryOut],
    dependencies=[Depends(require_admin)],
)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[CategoryOut]:
    category = await catalog.update_category(category_id, data)
    return Envelope(message="Category updated successfully", data=CategoryOut.model_validate(category))


@router.delete(
    "/categories/{category_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
async def delete_category(
    category_id: int,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[None]:
    await catalog.delete_category(category_id)
    return Envelope(message="Category deleted successfully")


# =============================================================================
# ITEMS
# =============================================================================

@router.get("/items", response_model=Envelope[Page[MenuItemOut]])
async def list_items(
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[int] = Query(None, description="Category id"),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    available: bool = Query(True, description="Only available items"),
    sort: SortOption = Query("name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[Page[MenuItemOut]]:
    items, total = await catalog.list_items(
        search=search,
        category_id=category,
        tags=tags.split(",") if tags else None,
        min_price=min_price,
        max_price=max_price,
        available_only=available,
        sort=sort,
        page=page,
        limit=limit,
    )
    return Envelope(data=Page(
        items=[MenuItemOut.model_validate(i) for i in items],
        pagination=Pagination.build(page, limit, total),
    ))


@router.get("/items/{item_id}", response_model=Envelope[MenuItemOut])
async def get_item(
    item_id: int,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[MenuItemOut]:
    return Envelope(data=MenuItemOut.model_validate(await catalog.get_item(item_id)))


@router.post(
    "/items",
    response_model=Envelope[MenuItemOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_item(
    data: MenuItemCreate,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[MenuItemOut]:
    item = await catalog.create_item(data)
    return Envelope(message="Menu item created successfully", data=MenuItemOut.model_validate(item))


@router.put(
    "/items/{item_id}",
    response_model=Envelope[MenuItemOut],
    dependencies=[Depends(require_admin)],
)
async def update_item(
    item_id: int,
    data: MenuItemUpdate,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[MenuItemOut]:
    item = await catalog.update_item(item_id, data)
    return Envelope(message="Menu item updated successfully", data=MenuItemOut.model_validate(item))


@router.delete(
    "/items/{item_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
async def delete_item(
    item_id: int,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[None]:
    await catalog.delete_item(item_id)
    return Envelope(message="Menu item deleted successfully")


@router.patch(
    "/items/{item_id}/toggle-availability",
    response_model=Envelope[MenuItemOut],
    dependencies=[Depends(require_staff)],
)
async def toggle_availability(
    item_id: int,
    catalog: MenuCatalog = Depends(get_catalog),
) -> Envelope[MenuItemOut]:
    item = await catalog.toggle_availability(item_id)
    state = "available" if item.availability else "unavailable"
    return Envelope(message=f"Menu item marked {state}", data=MenuItemOut.model_validate(item))


@router.get(
    "/analytics",
    response_model=Envelope[MenuAnalytics],
    dependencies=[Depends(require_admin)],
)
async def menu_analytics(catalog: MenuCatalog = Depends(get_catalog)) -> Envelope[MenuAnalytics]:
    return Envelope(data=await catalog.analytics())


# =============================================================================
# PUBLIC TABLE MENU
# =============================================================================

@router.get("/by-table/{slug}", response_model=Envelope[TableMenu], summary="Menu behind a QR code")
async def menu_for_table(
    slug: str,
    catalog: MenuCatalog = Depends(get_catalog),
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[TableMenu]:
    table = await tables.resolve_by_slug(slug)
    categories = await catalog.list_categories()
    items = await catalog.available_menu([c.id for c in categories])
    return Envelope(data=TableMenu(
        table=TablePublic.model_validate(table),
        categories=[CategoryOut.model_validate(c) for c in categories],
        items=[MenuItemOut.model_validate(i) for i in items],
    ))
