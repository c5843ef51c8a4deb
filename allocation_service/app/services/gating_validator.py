"""
Image gating
============

A variant cannot take stock without a representative photo: the storefront
renders one image per color/shape. An image counts when the catalog entry
already has one, or when the editing session staged one for that name.
"""

from typing import Iterable, List, Mapping, Optional, Sequence, Union

from ..schemas.allocation import PendingDelta, StagedImage
from ..schemas.variant import VariantAttributeBase

SessionImages = Mapping[str, Union[StagedImage, str, None]]


def _has_session_image(session_images: SessionImages, name: str) -> bool:
    image = session_images.get(name)
    if image is None:
        return False
    if isinstance(image, StagedImage):
        return bool(image.content)
    return bool(image.strip())


def find_attribute(
    catalog: Iterable[VariantAttributeBase], delta: PendingDelta
) -> Optional[VariantAttributeBase]:
    for attribute in catalog:
        if attribute.kind == delta.kind and attribute.name == delta.name:
            return attribute
    return None


def missing_images(
    pending_deltas: Sequence[PendingDelta],
    attribute_catalog: Sequence[VariantAttributeBase],
    session_images: Optional[SessionImages] = None,
) -> List[VariantAttributeBase]:
    """Attributes with a positive pending quantity and no image anywhere"""
    session_images = session_images or {}
    missing: List[VariantAttributeBase] = []

    for delta in pending_deltas:
        if delta.quantity <= 0:
            continue

        attribute = find_attribute(attribute_catalog, delta)
        if attribute is not None and attribute.has_image:
            continue
        if _has_session_image(session_images, delta.name):
            continue

        missing.append(
            attribute
            if attribute is not None
            else VariantAttributeBase(kind=delta.kind, name=delta.name)
        )

    return missing
