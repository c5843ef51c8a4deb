"""Service layer for Allocation Service"""

from .allocation_service import AllocationService
from .allocation_session import AllocationSession, SessionStatus
from .attribute_catalog import AttributeCatalogService
from .commit_service import CommitOrchestrator, LocationLockRegistry, location_locks
from .consolidation_service import ConsolidationService

__all__ = [
    "AllocationService",
    "AllocationSession",
    "AttributeCatalogService",
    "CommitOrchestrator",
    "ConsolidationService",
    "LocationLockRegistry",
    "SessionStatus",
    "location_locks",
]
