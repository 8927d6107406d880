import pytest

from qrmenu.core.config import OrderingConfig
from qrmenu.core.exceptions import ConflictError, DuplicateTableError, NotFoundError, TableNotFound
from qrmenu.models import OrderStatus, Table
from qrmenu.schemas import OrderLineCreate, TableCreate, TableUpdate
from qrmenu.services.ordering import OrderingEngine
from qrmenu.services.qr import QRCodeRenderer
from qrmenu.services.tables import TableRegistry, assign_slug, derive_slug


@pytest.fixture
def registry(db):
    return TableRegistry(db)


@pytest.fixture
def renderer():
    return QRCodeRenderer("http://frontend.test/", box_size=4, border=1)


# =============================================================================
# SLUGS
# =============================================================================

@pytest.mark.parametrize("number, slug", [
    ("T1", "table-t1"),
    ("  Patio  3 ", "table-patio-3"),
    ("BAR", "table-bar"),
])
def test_derive_slug(number, slug):
    assert derive_slug(number) == slug


def test_assign_slug_keeps_existing_slug():
    table = Table(number="T9", qr_slug="table-window")

    assert assign_slug(table).qr_slug == "table-window"
    assert assign_slug(Table(number="T9")).qr_slug == "table-t9"


# =============================================================================
# ADMINISTRATION
# =============================================================================

async def test_create_derives_slug(registry):
    table = await registry.create(TableCreate(number="T7", capacity=2, location="Terrace"))

    assert table.qr_slug == "table-t7"
    assert table.is_active
    assert (table.capacity, table.location) == (2, "Terrace")


async def test_create_with_explicit_slug(registry):
    table = await registry.create(TableCreate(number="T8", qr_slug="  Window-Seat "))

    assert table.qr_slug == "window-seat"


async def test_duplicate_number_rejected(registry):
    await registry.create(TableCreate(number="T1"))

    with pytest.raises(DuplicateTableError):
        await registry.create(TableCreate(number="T1"))


async def test_renumbering_keeps_slug(registry):
    table = await registry.create(TableCreate(number="T1"))

    renamed = await registry.update(table.id, TableUpdate(number="T10", capacity=6))

    assert renamed.number == "T10"
    assert renamed.capacity == 6
    assert renamed.qr_slug == "table-t1"
    assert (await registry.resolve_by_slug("table-t1")).id == table.id

    # the old number is free again but its slug is still taken
    with pytest.raises(DuplicateTableError):
        await registry.create(TableCreate(number="T1"))


async def test_renumbering_to_taken_number(registry):
    await registry.create(TableCreate(number="T1"))
    second = await registry.create(TableCreate(number="T2"))

    with pytest.raises(DuplicateTableError):
        await registry.update(second.id, TableUpdate(number="T1"))


async def test_list_tables_filters_active(registry):
    first = await registry.create(TableCreate(number="T1"))
    await registry.create(TableCreate(number="T2"))
    await registry.toggle_status(first.id)

    tables, total = await registry.list_tables(active=True)
    assert total == 1 and [t.number for t in tables] == ["T2"]

    tables, total = await registry.list_tables()
    assert total == 2


async def test_delete_table_without_orders(registry):
    table = await registry.create(TableCreate(number="T1"))

    await registry.delete(table.id)

    with pytest.raises(NotFoundError):
        await registry.get(table.id)


async def test_delete_table_with_orders_conflicts(db, menu):
    registry = TableRegistry(db)
    await OrderingEngine(db, OrderingConfig()).place_order(
        menu.table.id,
        [OrderLineCreate(menu_item_id=menu.burger.id, quantity=1)],
    )

    with pytest.raises(ConflictError):
        await registry.delete(menu.table.id)

    assert (await registry.get(menu.table.id)).number == "T1"


# =============================================================================
# RESOLUTION
# =============================================================================

async def test_resolve_by_slug(registry):
    table = await registry.create(TableCreate(number="T1"))

    assert (await registry.resolve_by_slug("table-t1")).id == table.id
    assert (await registry.resolve_by_slug(" TABLE-T1 ")).id == table.id


async def test_unknown_slug(registry):
    with pytest.raises(TableNotFound):
        await registry.resolve_by_slug("table-nope")


async def test_inactive_table_looks_missing(registry):
    table = await registry.create(TableCreate(number="T1"))
    await registry.toggle_status(table.id)

    with pytest.raises(TableNotFound):
        await registry.resolve_by_slug("table-t1")

    await registry.toggle_status(table.id)
    assert (await registry.resolve_by_slug("table-t1")).is_active


async def test_orders_still_reference_deactivated_table(db, menu):
    engine = OrderingEngine(db, OrderingConfig())
    order = await engine.place_order(
        menu.table.id,
        [OrderLineCreate(menu_item_id=menu.burger.id, quantity=1)],
    )
    await TableRegistry(db).toggle_status(menu.table.id)

    order = await engine.update_status(order.id, OrderStatus.PREPARING)

    assert order.table.number == "T1"


# =============================================================================
# QR CODES
# =============================================================================

def test_renderer_builds_png_data_url(renderer):
    assert renderer.table_url("table-t1") == "http://frontend.test/m/table-t1"

    png = renderer.render_png("http://frontend.test/m/table-t1")
    assert png.startswith(b"\x89PNG")
    assert renderer.render_data_url("hello").startswith("data:image/png;base64,")


async def test_qr_code_for_table(registry, renderer):
    table = await registry.create(TableCreate(number="T1"))

    qr = await registry.qr_code(table.id, renderer)

    assert qr.table_number == "T1"
    assert qr.qr_slug == "table-t1"
    assert qr.qr_url == "http://frontend.test/m/table-t1"
    assert qr.qr_code.startswith("data:image/png;base64,")


async def test_bulk_qr_codes_cover_active_tables(registry, renderer):
    await registry.create(TableCreate(number="T1"))
    second = await registry.create(TableCreate(number="T2"))
    await registry.create(TableCreate(number="T3"))
    await registry.toggle_status(second.id)

    codes = await registry.bulk_qr_codes(renderer)

    assert [c.table_number for c in codes] == ["T1", "T3"]
    assert all(c.qr_code.startswith("data:image/png;base64,") for c in codes)
