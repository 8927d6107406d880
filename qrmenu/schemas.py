"""
Pydantic Schemas for Request/Response Validation

Every endpoint answers with the same envelope:
    {"success": bool, "message": str | null, "data": ..., "errors": [...]}

Money leaves the API as plain JSON numbers (rounded to cents in storage).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from qrmenu.models import OrderStatus, PaymentMethod, PaymentStatus, UserRole

T = TypeVar("T")


# =============================================================================
# ENVELOPE & PAGINATION
# =============================================================================

class Envelope(BaseModel, Generic[T]):
    """Standard response wrapper."""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class Page(BaseModel, Generic[T]):
    items: List[T]
    pagination: Pagination


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    message: str
    errors: Optional[List[Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    environment: str
    timestamp: datetime


# =============================================================================
# ACCOUNTS
# =============================================================================

class UserRegister(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, examples=["Jane Doe"])
    email: EmailStr = Field(..., examples=["jane@example.com"])
    password: str = Field(..., min_length=6, max_length=128)
    role: Optional[UserRole] = Field(None, examples=["customer"])

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenRefresh(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class AuthResult(BaseModel):
    user: UserOut
    tokens: TokenPair


# =============================================================================
# MENU CATALOG
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, examples=["Mains"])
    display_order: int = Field(..., ge=0, examples=[1])
    description: Optional[str] = Field(None, max_length=200)
    image_url: Optional[str] = Field(None, max_length=500)
    active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name must be between 1 and 50 characters")
        return v


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    display_order: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=200)
    image_url: Optional[str] = Field(None, max_length=500)
    active: Optional[bool] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_order: int
    active: bool
    description: Optional[str] = None
    image_url: Optional[str] = None


class CategoryBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_order: int


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Burger"])
    description: str = Field(..., min_length=1, max_length=500)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, examples=[8.00])
    category_id: int
    image_url: Optional[str] = Field(None, max_length=500)
    availability: bool = True
    tags: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    preparation_time: Optional[int] = Field(None, ge=1)
    calories: Optional[int] = Field(None, ge=0)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[int] = None
    image_url: Optional[str] = Field(None, max_length=500)
    availability: Optional[bool] = None
    tags: Optional[List[str]] = None
    allergens: Optional[List[str]] = None
    preparation_time: Optional[int] = Field(None, ge=1)
    calories: Optional[int] = Field(None, ge=0)
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None


class MenuItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    category_id: int
    category: Optional[CategoryBrief] = None
    image_url: Optional[str] = None
    availability: bool
    tags: List[str]
    allergens: List[str]
    preparation_time: int
    calories: Optional[int] = None
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    popularity_score: int


class MenuItemBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float


class PopularItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    popularity_score: int


class MenuAnalytics(BaseModel):
    total_items: int
    available_items: int
    total_categories: int
    popular_items: List[PopularItem]


# =============================================================================
# TABLES
# =============================================================================

class TableCreate(BaseModel):
    number: str = Field(..., min_length=1, max_length=20, examples=["T1"])
    capacity: int = Field(default=4, ge=1, le=20)
    location: str = Field(default="Main Dining", max_length=50)
    qr_slug: Optional[str] = Field(None, min_length=1, max_length=60)

    @field_validator("number")
    @classmethod
    def strip_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Table number must be between 1 and 20 characters")
        return v


class TableUpdate(BaseModel):
    """The slug is deliberately absent: printed QR codes embed it."""
    number: Optional[str] = Field(None, min_length=1, max_length=20)
    capacity: Optional[int] = Field(None, ge=1, le=20)
    location: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("number")
    @classmethod
    def strip_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Table number must be between 1 and 20 characters")
        return v


class TableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    qr_slug: str
    is_active: bool
    capacity: int
    location: str
    created_at: datetime


class TablePublic(BaseModel):
    """What a customer sees after scanning a QR code."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    qr_slug: str
    capacity: int
    location: str


class QRCodeOut(BaseModel):
    table_id: int
    table_number: str
    qr_slug: str
    qr_url: str
    qr_code: str


class TableMenu(BaseModel):
    table: TablePublic
    categories: List[CategoryOut]
    items: List[MenuItemOut]


# =============================================================================
# ORDERS
# =============================================================================

class OrderLineCreate(BaseModel):
    """Single item in an order."""
    menu_item_id: int = Field(..., examples=[1])
    quantity: int = Field(..., ge=1, examples=[2])
    note: Optional[str] = Field(None, max_length=200)


class OrderCreate(BaseModel):
    """Request schema for placing a new order."""
    table_id: int = Field(..., examples=[1])
    items: List[OrderLineCreate] = Field(..., min_length=1)
    special_instructions: Optional[str] = Field(None, max_length=500)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH, examples=["cash"])


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    estimated_ready_time: Optional[datetime] = None


class OrderLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    menu_item: Optional[MenuItemBrief] = None
    quantity: int
    price: float
    note: Optional[str] = None
    line_total: float


class OrderOut(BaseModel):
    """Response schema for a single order."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    table: TablePublic
    customer: Optional[UserBrief] = None
    items: List[OrderLineOut] = Field(validation_alias=AliasChoices("lines", "items"))
    status: OrderStatus
    subtotal: float
    tax: float
    total: float
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    special_instructions: Optional[str] = None
    estimated_ready_time: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class TopItem(BaseModel):
    menu_item_id: int
    name: str
    total_quantity: int


class OrderAnalytics(BaseModel):
    total_orders: int
    today_orders: int
    pending_orders: int
    revenue_today: float
    revenue_total: float
    status_distribution: dict[str, int]
    top_items: List[TopItem]


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentIntentOut(BaseModel):
    order_id: int
    order_number: str
    payment_intent_id: str
    client_secret: Optional[str] = None
    amount: float
    currency: str
    provider: str


class WebhookAck(BaseModel):
    received: bool = True
    event_type: Optional[str] = None
    order_number: Optional[str] = None
