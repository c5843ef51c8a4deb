"""Location repository for database operations"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.location import Location, LocationKind
from ..schemas.inventory import LocationCreate


class LocationRepository:
    """Repository for branches and warehouses"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_location(self, location_data: LocationCreate) -> Location:
        location = Location(name=location_data.name, kind=location_data.kind)
        self.db.add(location)
        await self.db.commit()
        await self.db.refresh(location)
        return location

    async def get_location(self, location_id: int) -> Optional[Location]:
        query = select(Location).where(Location.id == location_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_locations(self, kind: Optional[LocationKind] = None) -> List[Location]:
        """List locations, branches first then warehouses, in creation order"""
        query = select(Location)
        if kind is not None:
            query = query.where(Location.kind == kind)
        query = query.order_by(Location.kind, Location.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
