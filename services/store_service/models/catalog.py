"""Store catalog models: products, variants, images."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import ProductCategory, enum_values
from sqlalchemy import BigInteger, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# CATALOG MODELS
# ============================================================================


class Product(Base):
    """A print-on-demand product, usually mirrored from a Printful sync product."""

    __tablename__ = "store_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing (USD)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    compare_at_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )  # "was" price for sales display

    category: Mapped[ProductCategory] = mapped_column(
        SAEnum(
            ProductCategory,
            values_callable=enum_values,
            name="store_product_category_enum",
        ),
        default=ProductCategory.OTHER,
        nullable=False,
        index=True,
    )
    tags: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Counters
    sales_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Printful link
    printful_sync_product_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, unique=True, index=True, nullable=True
    )
    printful_external_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    printful_base_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    print_files: Mapped[Optional[list]] = mapped_column(
        JSONType, nullable=True
    )  # [{"type": "front", "url": "..."}] for catalog-variant orders

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.position",
        lazy="selectin",
    )
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.sort_order",
        lazy="selectin",
    )

    @property
    def is_synced(self) -> bool:
        return self.printful_sync_product_id is not None

    @property
    def is_purchasable(self) -> bool:
        """Active and linked to a Printful sync product."""
        return bool(self.is_active) and self.is_synced

    @property
    def primary_image_url(self) -> Optional[str]:
        if not self.images:
            return None
        primary = next((img for img in self.images if img.is_primary), self.images[0])
        return primary.url

    def find_variant(
        self, size: str, color: Optional[str] = None
    ) -> Optional["ProductVariant"]:
        """Match a variant by size, and by color when one is given."""
        for variant in self.variants:
            if variant.size != size:
                continue
            if color and (variant.color or "") != color:
                continue
            return variant
        return None

    def variant_price(self, variant: "ProductVariant") -> Decimal:
        return variant.price if variant.price is not None else self.price

    @property
    def price_range(self) -> tuple[Decimal, Decimal]:
        prices = [self.variant_price(v) for v in self.variants] or [self.price]
        return min(prices), max(prices)

    @property
    def profit_margin(self) -> Optional[float]:
        """Percentage margin of the base price over the Printful base cost."""
        if not self.printful_base_cost or not self.price:
            return None
        return round(
            float((self.price - self.printful_base_cost) / self.price * 100), 2
        )

    def __repr__(self):
        return f"<Product {self.slug}>"


class ProductVariant(Base):
    """A purchasable size/color of a product."""

    __tablename__ = "store_product_variants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Size is normally a VariantSize value; unknown Printful sizes are kept verbatim
    size: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Price override (null = product price)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    price_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Printful identifiers
    printful_variant_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, nullable=True
    )  # catalog variant
    printful_sync_variant_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, nullable=True, index=True
    )
    printful_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )

    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="variants")

    @property
    def is_purchasable(self) -> bool:
        return self.printful_sync_variant_id is not None

    def __repr__(self):
        return f"<ProductVariant {self.sku or self.size}>"


class ProductImage(Base):
    """Product images. The first primary image is used for listings and order snapshots."""

    __tablename__ = "store_product_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    alt: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="images")

    def __repr__(self):
        return f"<ProductImage {self.url}>"
