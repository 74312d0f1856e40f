"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from services.store_service.models import (
    AdminRole,
    PaymentMethod,
    PaymentStatus,
    ProductCategory,
    PromotionScope,
    PromotionType,
)

# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductImageSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str = Field(..., max_length=1024)
    alt: Optional[str] = Field(None, max_length=255)
    is_primary: bool = False


class ProductVariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    size: str
    color: str = ""
    sku: Optional[str] = None
    stock: int
    price: Optional[float] = None
    price_locked: bool = False
    printful_variant_id: Optional[int] = None
    printful_sync_variant_id: Optional[int] = None
    printful_cost: Optional[float] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    price: float
    compare_at_price: Optional[float] = None
    category: ProductCategory
    tags: list[str] = []
    is_active: bool
    is_featured: bool
    is_purchasable: bool
    sales_count: int = 0
    view_count: int = 0
    primary_image_url: Optional[str] = None
    images: list[ProductImageSchema] = []
    variants: list[ProductVariantResponse] = []
    created_at: datetime


class AdminProductResponse(ProductResponse):
    printful_sync_product_id: Optional[int] = None
    printful_external_id: Optional[str] = None
    printful_base_cost: Optional[float] = None
    profit_margin: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    updated_at: datetime


class VariantInput(BaseModel):
    size: str = Field(..., max_length=32)
    color: str = Field("", max_length=64)
    sku: Optional[str] = Field(None, max_length=100)
    stock: int = Field(0, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    price_locked: bool = False
    printful_variant_id: Optional[int] = None
    printful_sync_variant_id: Optional[int] = None


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    category: ProductCategory = ProductCategory.OTHER
    tags: list[str] = []
    is_active: bool = True
    is_featured: bool = False
    images: list[ProductImageSchema] = []
    variants: list[VariantInput] = []
    print_files: Optional[list[dict]] = None
    printful_sync_product_id: Optional[int] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    tags: Optional[list[str]] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    print_files: Optional[list[dict]] = None


class VariantPriceUpdate(BaseModel):
    variant_id: uuid.UUID
    price: Optional[Decimal] = Field(None, ge=0)
    price_locked: Optional[bool] = None


class VariantPricesUpdate(BaseModel):
    variants: list[VariantPriceUpdate]


class ProductImagesUpdate(BaseModel):
    images: list[ProductImageSchema]


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    size: str = Field(..., max_length=32)
    color: Optional[str] = Field(None, max_length=64)
    quantity: int = Field(1, ge=1, le=99)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., le=99)


class CartItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_slug: Optional[str] = None
    image_url: Optional[str] = None
    size: str
    color: str = ""
    quantity: int
    price: float
    line_total: float


class CartResponse(BaseModel):
    id: Optional[uuid.UUID] = None
    items: list[CartItemResponse] = []
    item_count: int = 0
    subtotal: float = 0.0
    expires_at: Optional[datetime] = None
    removed_items: list[str] = []


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class Address(BaseModel):
    line1: str = Field(..., min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("US", min_length=2, max_length=2)

    @field_validator("country")
    @classmethod
    def upper_country(cls, value: str) -> str:
        return value.upper()


class ShippingAddressPartial(BaseModel):
    """Enough of an address to quote shipping."""

    line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = Field("US", min_length=2, max_length=2)

    @field_validator("country")
    @classmethod
    def upper_country(cls, value: str) -> str:
        return value.upper()


class CustomerInfo(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)


class ShippingQuoteRequest(BaseModel):
    shipping_address: ShippingAddressPartial = ShippingAddressPartial()
    promotion_code: Optional[str] = None


class CheckoutSessionRequest(BaseModel):
    shipping_address: Optional[ShippingAddressPartial] = None
    promotion_code: Optional[str] = None
    email: Optional[EmailStr] = None


class CheckoutConfirmRequest(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)
    customer: CustomerInfo
    shipping_address: Address
    billing_address: Optional[Address] = None
    promotion_code: Optional[str] = None


class CartTotalsResponse(BaseModel):
    subtotal: float
    shipping: float
    shipping_method: str
    shipping_source: str
    discount: float
    donation: float
    total: float
    promotion_code: Optional[str] = None


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    product_slug: Optional[str] = None
    product_image: Optional[str] = None
    size: str
    color: Optional[str] = None
    sku: Optional[str] = None
    quantity: int
    price: float
    subtotal: float


class TrackingInfo(BaseModel):
    number: Optional[str] = None
    carrier: Optional[str] = None
    url: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class OrderClientResponse(BaseModel):
    """What a customer sees on the order confirmation/status page."""

    order_number: str
    status: str
    status_label: str
    customer_first_name: str
    items: list[OrderItemResponse]
    subtotal: float
    shipping_cost: float
    discount_amount: float
    discount_code: Optional[str] = None
    donation_amount: float
    donation_description: Optional[str] = None
    total: float
    shipping_address: dict
    tracking: Optional[TrackingInfo] = None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_email: str
    customer_first_name: str
    customer_last_name: str
    customer_phone: Optional[str] = None
    shipping_address: dict
    billing_address: Optional[dict] = None
    items: list[OrderItemResponse] = []
    subtotal: float
    shipping_cost: float
    shipping_method: Optional[str] = None
    tax: float
    discount_code: Optional[str] = None
    discount_amount: float
    donation_amount: float
    total: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    stripe_payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_amount: float = 0.0
    fulfillment_status: str
    printful_order_id: Optional[int] = None
    printful_status: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_carrier: Optional[str] = None
    tracking_url: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    fulfillment_notes: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)  # None = full refund
    reason: Optional[str] = Field(None, max_length=255)


# ============================================================================
# PROMOTION SCHEMAS
# ============================================================================


class PromotionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    description: str = Field(..., min_length=1)
    type: PromotionType
    value: Decimal = Field(..., ge=0)
    scope: PromotionScope = PromotionScope.GLOBAL
    applicable_products: list[str] = []
    applicable_categories: list[str] = []
    auto_apply: bool = False
    show_banner: bool = False
    banner_text: Optional[str] = Field(None, max_length=255)
    banner_color: str = Field("#c41e3a", max_length=20)
    min_purchase_amount: Decimal = Field(Decimal("0"), ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit_total: Optional[int] = Field(None, ge=1)
    usage_limit_per_customer: int = Field(1, ge=1)
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True
    priority: int = 0


class PromotionCreate(PromotionBase):
    pass


class PromotionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    type: Optional[PromotionType] = None
    value: Optional[Decimal] = Field(None, ge=0)
    scope: Optional[PromotionScope] = None
    applicable_products: Optional[list[str]] = None
    applicable_categories: Optional[list[str]] = None
    auto_apply: Optional[bool] = None
    show_banner: Optional[bool] = None
    banner_text: Optional[str] = Field(None, max_length=255)
    banner_color: Optional[str] = Field(None, max_length=20)
    min_purchase_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit_total: Optional[int] = Field(None, ge=1)
    usage_limit_per_customer: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None


class PromotionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: Optional[str] = None
    description: str
    type: PromotionType
    value: float
    scope: PromotionScope
    applicable_products: list[str] = []
    applicable_categories: list[str] = []
    auto_apply: bool
    show_banner: bool
    banner_text: Optional[str] = None
    banner_color: str
    min_purchase_amount: float
    max_discount_amount: Optional[float] = None
    usage_limit_total: Optional[int] = None
    usage_limit_per_customer: int
    usage_count: int
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    priority: int
    created_at: datetime


class PromotionBanner(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: Optional[str] = None
    banner_text: Optional[str] = None
    banner_color: str
    type: PromotionType
    value: float


class ValidatePromotionRequest(BaseModel):
    code: Optional[str] = None
    subtotal: Decimal = Field(Decimal("0"), ge=0)


# ============================================================================
# ANALYTICS SCHEMAS
# ============================================================================


class TrackEventRequest(BaseModel):
    """Generic tracking beacon. ``event_type`` is checked by the endpoint."""

    event_type: Optional[str] = None
    session_id: Optional[str] = Field(None, max_length=128)
    visitor_id: Optional[str] = Field(None, max_length=128)
    page: Optional[str] = Field(None, max_length=1024)
    referrer: Optional[str] = Field(None, max_length=1024)
    product_id: Optional[uuid.UUID] = None
    product_name: Optional[str] = Field(None, max_length=255)
    product_category: Optional[str] = Field(None, max_length=50)
    product_price: Optional[Decimal] = None
    quantity: Optional[int] = None
    cart_total: Optional[Decimal] = None
    order_id: Optional[uuid.UUID] = None
    order_number: Optional[str] = Field(None, max_length=40)
    order_total: Optional[Decimal] = None
    promotion_id: Optional[uuid.UUID] = None
    promotion_code: Optional[str] = Field(None, max_length=50)
    discount_amount: Optional[Decimal] = None
    search_query: Optional[str] = Field(None, max_length=255)
    search_results_count: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None


class PageViewRequest(BaseModel):
    page: Optional[str] = Field(None, max_length=1024)
    referrer: Optional[str] = Field(None, max_length=1024)
    visitor_id: Optional[str] = Field(None, max_length=128)
    session_id: Optional[str] = Field(None, max_length=128)


class ProductViewRequest(BaseModel):
    product_id: Optional[uuid.UUID] = None
    product_name: Optional[str] = Field(None, max_length=255)
    product_category: Optional[str] = Field(None, max_length=50)
    product_price: Optional[Decimal] = None
    visitor_id: Optional[str] = Field(None, max_length=128)
    session_id: Optional[str] = Field(None, max_length=128)


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================


class AdminLoginRequest(BaseModel):
    """Missing fields are reported by the endpoint as a 400."""

    email: Optional[str] = None
    password: Optional[str] = None


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    role: AdminRole
    is_active: bool
    last_login: Optional[datetime] = None


class SettingsUpdate(BaseModel):
    settings: dict[str, Any]
