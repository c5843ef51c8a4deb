"""Variant attribute catalog repository"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.variant import VariantAttribute, VariantKind
from ..schemas.variant import VariantAttributeCreate


class AttributeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_attribute(
        self, attribute_data: VariantAttributeCreate
    ) -> VariantAttribute:
        attribute = VariantAttribute(**attribute_data.model_dump())
        self.db.add(attribute)
        await self.db.commit()
        await self.db.refresh(attribute)
        return attribute

    async def list_attributes(
        self, product_id: int, kind: Optional[VariantKind] = None
    ) -> List[VariantAttribute]:
        query = select(VariantAttribute).where(VariantAttribute.product_id == product_id)
        if kind is not None:
            query = query.where(VariantAttribute.kind == kind)
        query = query.order_by(VariantAttribute.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
