"""
Table endpoints.

Slug resolution is public (it is what a scanned QR code hits); everything
else is table administration and needs an admin.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from qrmenu.routers.deps import get_table_registry, require_admin
from qrmenu.schemas import (
    Envelope,
    Page,
    Pagination,
    QRCodeOut,
    TableCreate,
    TableOut,
    TablePublic,
    TableUpdate,
)
from qrmenu.services.qr import QRCodeRenderer, get_qr_renderer
from qrmenu.services.tables import TableRegistry

router = APIRouter(prefix="/tables", tags=["Tables"])


@router.get("/by-slug/{slug}", response_model=Envelope[TablePublic], summary="Resolve a QR slug")
async def get_table_by_slug(
    slug: str,
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[TablePublic]:
    return Envelope(data=TablePublic.model_validate(await tables.resolve_by_slug(slug)))


@router.get(
    "/qr/bulk-generate",
    response_model=Envelope[List[QRCodeOut]],
    dependencies=[Depends(require_admin)],
)
async def bulk_generate_qr_codes(
    tables: TableRegistry = Depends(get_table_registry),
    renderer: QRCodeRenderer = Depends(get_qr_renderer),
) -> Envelope[List[QRCodeOut]]:
    codes = await tables.bulk_qr_codes(renderer)
    return Envelope(message=f"Generated QR codes for {len(codes)} tables", data=codes)


@router.get("", response_model=Envelope[Page[TableOut]], dependencies=[Depends(require_admin)])
async def list_tables(
    active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[Page[TableOut]]:
    rows, total = await tables.list_tables(active=active, page=page, limit=limit)
    return Envelope(data=Page(
        items=[TableOut.model_validate(t) for t in rows],
        pagination=Pagination.build(page, limit, total),
    ))


@router.post(
    "",
    response_model=Envelope[TableOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_table(
    data: TableCreate,
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[TableOut]:
    table = await tables.create(data)
    return Envelope(message="Table created successfully", data=TableOut.model_validate(table))


@router.get("/{table_id}", response_model=Envelope[TableOut], dependencies=[Depends(require_admin)])
async def get_table(
    table_id: int,
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[TableOut]:
    return Envelope(data=TableOut.model_validate(await tables.get(table_id)))


@router.put("/{table_id}", response_model=Envelope[TableOut], dependencies=[Depends(require_admin)])
async def update_table(
    table_id: int,
    data: TableUpdate,
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[TableOut]:
    table = await tables.update(table_id, data)
    return Envelope(message="Table updated successfully", data=TableOut.model_validate(table))


@router.delete("/{table_id}", response_model=Envelope[None], dependencies=[Depends(require_admin)])
async def delete_table(
    table_id: int,
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[None]:
    await tables.delete(table_id)
    return Envelope(message="Table deleted successfully")


@router.patch(
    "/{table_id}/toggle-status",
    response_model=Envelope[TableOut],
    dependencies=[Depends(require_admin)],
)
async def toggle_table_status(
    table_id: int,
    tables: TableRegistry = Depends(get_table_registry),
) -> Envelope[TableOut]:
    table = await tables.toggle_status(table_id)
    state = "activated" if table.is_active else "deactivated"
    return Envelope(message=f"Table {state} successfully", data=TableOut.model_validate(table))


@router.get("/{table_id}/qr", response_model=Envelope[QRCodeOut], dependencies=[Depends(require_admin)])
async def generate_qr_code(
    table_id: int,
    tables: TableRegistry = Depends(get_table_registry),
    renderer: QRCodeRenderer = Depends(get_qr_renderer),
) -> Envelope[QRCodeOut]:
    return Envelope(data=await tables.qr_code(table_id, renderer))
