"""
Table Registry Service

Physical tables and their public QR slugs.

A slug is derived once from the table number when the table is created
and is never recomputed afterwards, even if the table is renumbered:
printed QR codes embed it. Customers can only resolve active tables; a
deactivated table looks exactly like one that never existed.
"""

import logging
import re
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrmenu.core.exceptions import (
    ConflictError,
    DuplicateTableError,
    NotFoundError,
    TableNotFound,
)
from qrmenu.models import Order, Table
from qrmenu.schemas import QRCodeOut, TableCreate, TableUpdate
from qrmenu.services.qr import QRCodeRenderer

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def derive_slug(number: str) -> str:
    """'T1' -> 'table-t1', 'Patio 3' -> 'table-patio-3'."""
    return f"table-{_WHITESPACE.sub('-', number.strip().lower())}"


def assign_slug(table: Table) -> Table:
    """Give the table a slug derived from its number unless it already has one."""
    if not table.qr_slug:
        table.qr_slug = derive_slug(table.number)
    return table


class TableRegistry:

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    async def resolve_by_slug(self, slug: str) -> Table:
        """
        Active table with this slug, or TableNotFound.

        The incoming slug is trimmed and lowercased before the lookup;
        stored slugs are always lowercase, so "TABLE-T1" finds "table-t1".
        """
        result = await self.db.execute(
            select(Table).where(
                Table.qr_slug == slug.strip().lower(),
                Table.is_active.is_(True),
            )
        )
        table = result.scalar_one_or_none()
        if table is None:
            logger.warning(f"Slug lookup failed: {slug!r}")
            raise TableNotFound()
        return table

    async def resolve(self, table_id: int) -> Optional[Table]:
        return await self.db.get(Table, table_id)

    async def get(self, table_id: int) -> Table:
        table = await self.resolve(table_id)
        if table is None:
            raise NotFoundError("Table not found")
        return table

    async def list_tables(
        self,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[Sequence[Table], int]:
        conditions = []
        if active is not None:
            conditions.append(Table.is_active.is_(active))

        total = await self.db.scalar(select(func.count(Table.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Table)
            .where(*conditions)
            .order_by(Table.number, Table.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    async def _ensure_number_free(self, number: str, exclude_id: Optional[int] = None) -> None:
        query = select(Table.id).where(Table.number == number)
        if exclude_id is not None:
            query = query.where(Table.id != exclude_id)
        if await self.db.scalar(query) is not None:
            raise DuplicateTableError()

    async def _ensure_slug_free(self, slug: str) -> None:
        if await self.db.scalar(select(Table.id).where(Table.qr_slug == slug)) is not None:
            raise DuplicateTableError("Table with this QR slug already exists")

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Table uniqueness violated on commit: {e.orig}")
            raise DuplicateTableError() from e

    async def create(self, data: TableCreate) -> Table:
        await self._ensure_number_free(data.number)

        table = Table(
            number=data.number,
            capacity=data.capacity,
            location=data.location,
            qr_slug=data.qr_slug.strip().lower() if data.qr_slug else None,
            is_active=True,
        )
        assign_slug(table)
        await self._ensure_slug_free(table.qr_slug)

        self.db.add(table)
        await self._commit()
        logger.info(f"Table {table.number} created with slug '{table.qr_slug}'")
        return table

    async def update(self, table_id: int, data: TableUpdate) -> Table:
        table = await self.get(table_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "number" in changes and changes["number"] != table.number:
            await self._ensure_number_free(changes["number"], exclude_id=table_id)

        for field, value in changes.items():
            setattr(table, field, value)

        await self._commit()
        await self.db.refresh(table)
        return table

    async def delete(self, table_id: int) -> None:
        """Tables with order history can only be deactivated."""
        table = await self.get(table_id)
        has_orders = await self.db.scalar(
            select(func.count(Order.id)).where(Order.table_id == table_id)
        )
        if has_orders:
            raise ConflictError("Cannot delete a table with orders; deactivate it instead")
        await self.db.delete(table)
        await self.db.commit()
        logger.info(f"Table #{table_id} deleted")

    async def toggle_status(self, table_id: int) -> Table:
        table = await self.get(table_id)
        table.is_active = not table.is_active
        await self.db.commit()
        await self.db.refresh(table)
        logger.info(
            f"Table {table.number} {'activated' if table.is_active else 'deactivated'}"
        )
        return table

    # =========================================================================
    # QR CODES
    # =========================================================================

    async def qr_code(self, table_id: int, renderer: QRCodeRenderer) -> QRCodeOut:
        table = await self.get(table_id)
        return self._render(table, renderer)

    async def bulk_qr_codes(self, renderer: QRCodeRenderer) -> list[QRCodeOut]:
        result = await self.db.execute(
            select(Table).where(Table.is_active.is_(True)).order_by(Table.number)
        )
        return [self._render(t, renderer, box_size=7) for t in result.scalars().all()]

    @staticmethod
    def _render(
        table: Table,
        renderer: QRCodeRenderer,
        box_size: Optional[int] = None,
    ) -> QRCodeOut:
        url = renderer.table_url(table.qr_slug)
        return QRCodeOut(
            table_id=table.id,
            table_number=table.number,
            qr_slug=table.qr_slug,
            qr_url=url,
            qr_code=renderer.render_data_url(url, box_size=box_size),
        )
