from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.variant import ProductVariant, VariantKind
from .variant_value import decode_variant_value


class VariantAttributeBase(BaseModel):
    kind: VariantKind = VariantKind.COLOR
    name: str = Field(..., min_length=1, max_length=255)
    color_hex: Optional[str] = Field(default=None, max_length=16)
    image_url: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_url and self.image_url.strip())


class VariantAttributeCreate(VariantAttributeBase):
    product_id: int


class VariantAttributeResponse(VariantAttributeBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int


class VariantAllocationWrite(BaseModel):
    """One additive write against a variant row"""

    product_id: int
    location_id: int
    kind: VariantKind
    name: str
    quantity: int = Field(..., gt=0)
    value: Optional[str] = None
    color_hex: Optional[str] = Field(default=None, max_length=16)


class VariantRecordResponse(BaseModel):
    id: int
    product_id: int
    location_id: int
    kind: VariantKind
    name: str
    quantity: int
    barcode: str
    image_url: Optional[str] = None
    color_hex: Optional[str] = None

    @classmethod
    def from_model(cls, variant: ProductVariant) -> "VariantRecordResponse":
        value = decode_variant_value(variant.value)
        return cls(
            id=variant.id,
            product_id=variant.product_id,
            location_id=variant.location_id,
            kind=variant.kind,
            name=variant.name,
            quantity=variant.quantity,
            barcode=value.barcode,
            image_url=value.image_url,
            color_hex=variant.color_hex,
        )
