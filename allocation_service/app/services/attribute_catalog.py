"""Read access to a product's color/shape catalog"""

from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.setting import get_settings
from ..models.variant import VariantKind
from ..repository.attribute_repository import AttributeRepository
from ..repository.variant_repository import VariantRepository
from ..schemas.variant import VariantAttributeResponse
from ..schemas.variant_value import decode_variant_value


class AttributeCatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.attributes = AttributeRepository(db)
        self.variants = VariantRepository(db)
        self.default_color_hex = get_settings().DEFAULT_COLOR_HEX

    async def get_attributes(
        self, product_id: int, kind: Optional[VariantKind] = None
    ) -> List[VariantAttributeResponse]:
        """Catalog entries; an entry without an image borrows one already
        saved on a variant row of the same name at any location."""
        attributes = await self.attributes.list_attributes(product_id, kind)
        variants = await self.variants.list_for_product(product_id, kind)

        variant_images: Dict[Tuple[VariantKind, str], str] = {}
        for variant in variants:
            image_url = decode_variant_value(variant.value).image_url
            if image_url:
                variant_images.setdefault((variant.kind, variant.name), image_url)

        catalog: List[VariantAttributeResponse] = []
        for attribute in attributes:
            entry = VariantAttributeResponse.model_validate(attribute)
            update = {}
            if not entry.has_image:
                update["image_url"] = variant_images.get((entry.kind, entry.name))
            if entry.kind == VariantKind.COLOR and not entry.color_hex:
                update["color_hex"] = self.default_color_hex
            if update:
                entry = entry.model_copy(update=update)
            catalog.append(entry)
        return catalog
