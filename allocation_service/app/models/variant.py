import enum

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, Integer, String, TEXT
from sqlalchemy.orm import Mapped, mapped_column

from .base import AllocationServiceBaseModel


class VariantKind(str, enum.Enum):
    COLOR = "color"
    SHAPE = "shape"


class VariantAttribute(AllocationServiceBaseModel):
    """Product-level catalog entry for an assignable color or shape."""

    __tablename__ = "variant_attributes"

    product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    kind: Mapped[VariantKind] = mapped_column(
        Enum(VariantKind, native_enum=False, length=20), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color_hex: Mapped[str | None] = mapped_column(String(16), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


class ProductVariant(AllocationServiceBaseModel):
    """Quantity of one named variant of a product held at one location.

    ``value`` stores the encoded barcode, see ``schemas.variant_value``.
    Duplicate rows for the same (product, location, kind, name) are allowed at
    the storage level and folded together by the consolidation service.
    """

    __tablename__ = "product_variants"

    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[VariantKind] = mapped_column(
        Enum(VariantKind, native_enum=False, length=20), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    value: Mapped[str | None] = mapped_column(TEXT, nullable=True)
    color_hex: Mapped[str | None] = mapped_column(String(16), nullable=True)

    __table_args__ = (
        Index("ix_product_variants_scope", "product_id", "location_id"),
        CheckConstraint("quantity >= 0", name="product_variant_quantity_non_negative"),
    )
