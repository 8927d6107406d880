"""
SQLAlchemy Database Models

Menu catalog, table registry, orders and user accounts for the
QR table-ordering service.

Monetary columns are Numeric(10, 2) and surface as Decimal.
Timestamps are timezone-aware UTC.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from qrmenu.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part for part in value.strip(",").split(",") if part]


def _join_csv(values) -> str:
    """Store as ',a,b,' so a single tag can be matched with LIKE '%,a,%'."""
    cleaned = []
    for value in values or []:
        value = value.strip().lower()
        if value and value not in cleaned:
            cleaned.append(value)
    return f",{','.join(cleaned)}," if cleaned else ""


class UserRole(str, enum.Enum):
    """Account roles."""
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    """Order fulfillment lifecycle."""
    PLACED = "placed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELED = "canceled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    DIGITAL = "digital"


# =============================================================================
# ACCOUNTS
# =============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


# =============================================================================
# MENU CATALOG
# =============================================================================

class MenuCategory(Base):
    __tablename__ = "menu_categories"
    __table_args__ = (
        CheckConstraint("display_order >= 0", name="ck_category_display_order"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False, index=True)
    display_order = Column(Integer, nullable=False, index=True)
    active = Column(Boolean, default=True, nullable=False, index=True)
    description = Column(String(200), nullable=True)
    image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    def __repr__(self):
        return f"<MenuCategory #{self.id} - {self.name}>"


class MenuItem(Base):
    """
    A dish or drink on the menu.

    popularity_score only ever grows: it is bumped by the ordered quantity
    when an order containing the item commits.
    """
    __tablename__ = "menu_items"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_menu_item_price"),
        CheckConstraint("popularity_score >= 0", name="ck_menu_item_popularity"),
        CheckConstraint("preparation_time >= 1", name="ck_menu_item_prep_time"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, index=True)
    category_id = Column(
        Integer,
        ForeignKey("menu_categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    image_url = Column(String(500), nullable=True)
    availability = Column(Boolean, default=True, nullable=False, index=True)
    tags_csv = Column("tags", String(500), default="", nullable=False)
    allergens_csv = Column("allergens", String(500), default="", nullable=False)
    preparation_time = Column(Integer, default=15, nullable=False)
    calories = Column(Integer, nullable=True)
    is_vegetarian = Column(Boolean, default=False, nullable=False)
    is_vegan = Column(Boolean, default=False, nullable=False)
    is_gluten_free = Column(Boolean, default=False, nullable=False)
    popularity_score = Column(Integer, default=0, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    category = relationship("MenuCategory", lazy="selectin")

    @property
    def tags(self) -> list[str]:
        return _split_csv(self.tags_csv)

    @tags.setter
    def tags(self, values) -> None:
        self.tags_csv = _join_csv(values)

    @property
    def allergens(self) -> list[str]:
        return _split_csv(self.allergens_csv)

    @allergens.setter
    def allergens(self, values) -> None:
        self.allergens_csv = _join_csv(values)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


# =============================================================================
# TABLE REGISTRY
# =============================================================================

class Table(Base):
    """
    A physical dining table.

    qr_slug is printed into the table's QR code and must never change once
    assigned.
    """
    __tablename__ = "tables"
    __table_args__ = (
        CheckConstraint("capacity >= 1 AND capacity <= 20", name="ck_table_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    number = Column(String(20), nullable=False, unique=True)
    qr_slug = Column(String(60), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    capacity = Column(Integer, default=4, nullable=False)
    location = Column(String(50), default="Main Dining", nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    def __repr__(self):
        return f"<Table {self.number} - {self.qr_slug}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    A customer's order for one table.

    Pricing fields are computed once at placement from captured line prices.
    Orders are never deleted; they only move through status transitions.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_order_subtotal"),
        CheckConstraint("tax >= 0", name="ck_order_tax"),
        CheckConstraint("total >= 0", name="ck_order_total"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(20), nullable=True, unique=True, index=True)

    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True
    )

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_status = Column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False
    )
    payment_method = Column(
        Enum(PaymentMethod),
        default=PaymentMethod.CASH,
        nullable=False
    )
    payment_intent_id = Column(String(100), nullable=True, index=True)

    special_instructions = Column(Text, nullable=True)
    estimated_ready_time = Column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    table = relationship("Table", lazy="selectin")
    customer = relationship("User", lazy="selectin")
    lines = relationship(
        "OrderLine",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )

    def __repr__(self):
        return f"<Order {self.order_number} - {self.status.value} - {self.total}>"


class OrderLine(Base):
    """One (menu item, quantity, captured price, note) entry of an order."""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_line_quantity"),
        CheckConstraint("price >= 0", name="ck_order_line_price"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    note = Column(String(200), nullable=True)

    order = relationship("Order", back_populates="lines")
    menu_item = relationship("MenuItem", lazy="selectin")

    @property
    def line_total(self):
        return self.price * self.quantity
