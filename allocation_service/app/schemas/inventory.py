from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.location import LocationKind


class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    kind: LocationKind = LocationKind.BRANCH


class LocationCreate(LocationBase):
    pass


class LocationResponse(LocationBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


class InventoryBase(BaseModel):
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)


class InventoryUpsert(InventoryBase):
    """Stock receipt / product save for one (product, location)"""

    product_id: int
    location_id: int


class InventoryResponse(InventoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    location_id: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_low_stock(self) -> bool:
        return self.min_stock > 0 and self.quantity <= self.min_stock
