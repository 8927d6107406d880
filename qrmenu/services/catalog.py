"""
Menu Catalog Service

Categories and menu items: admin CRUD, filtered listings for the public
menu, availability toggles, popularity ranking and the item resolution
capability the ordering engine depends on.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qrmenu.core.exceptions import CategoryNotFound, ConflictError, ItemNotFound
from qrmenu.models import MenuCategory, MenuItem, OrderLine
from qrmenu.schemas import (
    CategoryCreate,
    CategoryUpdate,
    MenuAnalytics,
    MenuItemCreate,
    MenuItemUpdate,
    PopularItem,
)

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    "name": (MenuItem.name.asc(),),
    "price-asc": (MenuItem.price.asc(), MenuItem.name.asc()),
    "price-desc": (MenuItem.price.desc(), MenuItem.name.asc()),
    "popularity": (MenuItem.popularity_score.desc(), MenuItem.name.asc()),
}


class MenuCatalog:
    """Read-mostly menu reference data."""

    def __init__(self, db: AsyncSession, default_preparation_time: int = 15):
        self.db = db
        self.default_preparation_time = default_preparation_time

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def list_categories(self, include_inactive: bool = False) -> Sequence[MenuCategory]:
        query = select(MenuCategory).order_by(MenuCategory.display_order, MenuCategory.id)
        if not include_inactive:
            query = query.where(MenuCategory.active.is_(True))
        result = await self.db.execute(query)
        return result.scalars().all()

    async def get_category(self, category_id: int) -> MenuCategory:
        category = await self.db.get(MenuCategory, category_id)
        if category is None:
            raise CategoryNotFound()
        return category

    async def create_category(self, data: CategoryCreate) -> MenuCategory:
        category = MenuCategory(**data.model_dump())
        self.db.add(category)
        await self.db.commit()
        logger.info(f"Category '{category.name}' created (#{category.id})")
        return category

    async def update_category(self, category_id: int, data: CategoryUpdate) -> MenuCategory:
        category = await self.get_category(category_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int) -> None:
        """A category still referenced by menu items cannot be deleted."""
        category = await self.get_category(category_id)
        item_count = await self.db.scalar(
            select(func.count(MenuItem.id)).where(MenuItem.category_id == category_id)
        )
        if item_count:
            raise ConflictError("Cannot delete category with existing items")
        await self.db.delete(category)
        await self.db.commit()
        logger.info(f"Category #{category_id} deleted")

    # =========================================================================
    # ITEMS
    # =========================================================================

    async def list_items(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        tags: Optional[Iterable[str]] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        available_only: bool = True,
        sort: str = "name",
        page: int = 1,
        limit: int = 20,
    ) -> tuple[Sequence[MenuItem], int]:
        """Filtered, sorted page of menu items plus the total match count."""
        conditions = []
        if available_only:
            conditions.append(MenuItem.availability.is_(True))
        if category_id is not None:
            conditions.append(MenuItem.category_id == category_id)
        if min_price is not None:
            conditions.append(MenuItem.price >= min_price)
        if max_price is not None:
            conditions.append(MenuItem.price <= max_price)

        tag_list = [t.strip().lower() for t in tags or [] if t.strip()]
        if tag_list:
            conditions.append(or_(*(MenuItem.tags_csv.like(f"%,{t},%") for t in tag_list)))

        if search:
            pattern = f"%{search.strip().lower()}%"
            conditions.append(or_(
                func.lower(MenuItem.name).like(pattern),
                func.lower(MenuItem.description).like(pattern),
                MenuItem.tags_csv.like(pattern),
            ))

        order_by = SORT_OPTIONS.get(sort, SORT_OPTIONS["name"])
        query = (
            select(MenuItem)
            .where(*conditions)
            .order_by(*order_by, MenuItem.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_query = select(func.count(MenuItem.id)).where(*conditions)

        total = await self.db.scalar(count_query) or 0
        result = await self.db.execute(query)
        return result.scalars().all(), total

    async def available_menu(self, category_ids: Iterable[int]) -> Sequence[MenuItem]:
        """Every available item of the given categories, in menu order."""
        ids = list(category_ids)
        if not ids:
            return []
        result = await self.db.execute(
            select(MenuItem)
            .join(MenuCategory, MenuCategory.id == MenuItem.category_id)
            .where(MenuItem.availability.is_(True), MenuItem.category_id.in_(ids))
            .order_by(MenuCategory.display_order, MenuItem.name, MenuItem.id)
        )
        return result.scalars().all()

    async def get_item(self, item_id: int) -> MenuItem:
        item = await self.db.get(MenuItem, item_id)
        if item is None:
            raise ItemNotFound(f"Menu item with ID {item_id} not found")
        return item

    async def resolve_items(self, item_ids: Iterable[int]) -> dict[int, MenuItem]:
        """
        Fetch the referenced items in one query.

        Ids with no matching row are simply absent from the result; the caller
        decides how to report them.
        """
        ids = set(item_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
        return {item.id: item for item in result.scalars().all()}

    async def create_item(self, data: MenuItemCreate) -> MenuItem:
        await self.get_category(data.category_id)

        values = data.model_dump()
        if values["preparation_time"] is None:
            values["preparation_time"] = self.default_preparation_time
        item = MenuItem(**values)
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item, attribute_names=["category"])
        logger.info(f"Menu item '{item.name}' created (#{item.id}, {item.price})")
        return item

    async def update_item(self, item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = await self.get_item(item_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("category_id") is not None:
            await self.get_category(changes["category_id"])

        for field, value in changes.items():
            if value is None and field not in ("image_url", "calories"):
                continue
            setattr(item, field, value)

        await self.db.commit()
        await self.db.refresh(item)
        await self.db.refresh(item, attribute_names=["category"])
        return item

    async def delete_item(self, item_id: int) -> None:
        """Items that appear in order history are disabled, not deleted."""
        item = await self.get_item(item_id)
        referenced = await self.db.scalar(
            select(func.count(OrderLine.id)).where(OrderLine.menu_item_id == item_id)
        )
        if referenced:
            raise ConflictError(
                "Cannot delete a menu item that appears in orders; disable it instead"
            )
        await self.db.delete(item)
        await self.db.commit()
        logger.info(f"Menu item #{item_id} deleted")

    async def toggle_availability(self, item_id: int) -> MenuItem:
        item = await self.get_item(item_id)
        item.availability = not item.availability
        await self.db.commit()
        logger.info(
            f"Menu item #{item_id} {'enabled' if item.availability else 'disabled'}"
        )
        return item

    async def increment_popularity(self, quantities: dict[int, int]) -> None:
        """
        Atomically add ordered quantities to popularity scores.

        Runs inside the caller's transaction; nothing is committed here.
        """
        for item_id, quantity in quantities.items():
            await self.db.execute(
                update(MenuItem)
                .where(MenuItem.id == item_id)
                .values(popularity_score=MenuItem.popularity_score + quantity)
            )

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    async def analytics(self, limit: int = 5) -> MenuAnalytics:
        total_items = await self.db.scalar(select(func.count(MenuItem.id))) or 0
        available_items = await self.db.scalar(
            select(func.count(MenuItem.id)).where(MenuItem.availability.is_(True))
        ) or 0
        total_categories = await self.db.scalar(
            select(func.count(MenuCategory.id)).where(MenuCategory.active.is_(True))
        ) or 0
        result = await self.db.execute(
            select(MenuItem)
            .where(MenuItem.availability.is_(True))
            .order_by(MenuItem.popularity_score.desc(), MenuItem.name)
            .limit(limit)
        )
        return MenuAnalytics(
            total_items=total_items,
            available_items=available_items,
            total_categories=total_categories,
            popular_items=[PopularItem.model_validate(i) for i in result.scalars().all()],
        )
