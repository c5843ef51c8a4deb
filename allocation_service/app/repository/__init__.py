"""Repository layer for Allocation Service"""

from .attribute_repository import AttributeRepository
from .inventory_repository import InventoryRepository
from .location_repository import LocationRepository
from .variant_repository import VariantRepository

__all__ = [
    "AttributeRepository",
    "InventoryRepository",
    "LocationRepository",
    "VariantRepository",
]
