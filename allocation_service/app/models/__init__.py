from .base import AllocationServiceBase, AllocationServiceBaseModel
from .inventory import InventoryRecord
from .location import Location, LocationKind
from .variant import ProductVariant, VariantAttribute, VariantKind

"""Allocation Service Models"""

__all__ = [
    "AllocationServiceBase",
    "AllocationServiceBaseModel",
    "InventoryRecord",
    "Location",
    "LocationKind",
    "ProductVariant",
    "VariantAttribute",
    "VariantKind",
]
