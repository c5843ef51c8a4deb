"""Inventory repository for database operations"""

from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.inventory import InventoryRecord
from ..schemas.inventory import InventoryUpsert


class InventoryRepository:
    """Repository for per-location stock totals"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_inventory(
        self, product_id: int, location_id: int
    ) -> Optional[InventoryRecord]:
        query = select(InventoryRecord).where(
            and_(
                InventoryRecord.product_id == product_id,
                InventoryRecord.location_id == location_id,
            )
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_for_product(self, product_id: int) -> List[InventoryRecord]:
        query = (
            select(InventoryRecord)
            .where(InventoryRecord.product_id == product_id)
            .order_by(InventoryRecord.location_id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def upsert_inventory(self, inventory_data: InventoryUpsert) -> InventoryRecord:
        """Set quantity and min stock for one (product, location)"""
        inventory = await self.get_inventory(
            inventory_data.product_id, inventory_data.location_id
        )
        if inventory is None:
            inventory = InventoryRecord(
                product_id=inventory_data.product_id,
                location_id=inventory_data.location_id,
            )
            self.db.add(inventory)

        inventory.quantity = inventory_data.quantity
        inventory.min_stock = inventory_data.min_stock

        await self.db.commit()
        await self.db.refresh(inventory)
        return inventory
