"""
Encoded variant value
=====================

A variant row stores its barcode in a single text column. Rows written
before images existed hold the bare barcode; rows with an image hold a JSON
object ``{"barcode": ..., "image": ...}``. Both shapes are read through
``decode_variant_value`` and written through ``encode_variant_value``.
"""

import json
import random
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class Barcode(BaseModel):
    model_config = ConfigDict(frozen=True)

    barcode: str

    @property
    def image_url(self) -> Optional[str]:
        return None


class BarcodeWithImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    barcode: str
    image_url: str


VariantValue = Union[Barcode, BarcodeWithImage]


def make_variant_value(barcode: str, image_url: Optional[str] = None) -> VariantValue:
    if image_url:
        return BarcodeWithImage(barcode=barcode, image_url=image_url)
    return Barcode(barcode=barcode)


def encode_variant_value(value: VariantValue) -> str:
    if isinstance(value, BarcodeWithImage):
        return json.dumps(
            {"barcode": value.barcode, "image": value.image_url}, ensure_ascii=False
        )
    return value.barcode


def decode_variant_value(raw: Optional[str]) -> VariantValue:
    if not raw:
        return Barcode(barcode="")

    try:
        data = json.loads(raw)
    except ValueError:
        return Barcode(barcode=raw)

    # Numeric barcodes are valid JSON too; only objects carry an image
    if not isinstance(data, dict):
        return Barcode(barcode=raw)

    image = data.get("image")
    return make_variant_value(
        str(data.get("barcode") or ""), str(image) if image else None
    )


def with_image(value: VariantValue, image_url: str) -> BarcodeWithImage:
    """Same barcode, new image."""
    return BarcodeWithImage(barcode=value.barcode, image_url=image_url)


def generate_barcode() -> str:
    """Random 10-digit numeric barcode."""
    return str(random.randint(1_000_000_000, 9_999_999_999))
