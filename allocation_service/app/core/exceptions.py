"""Error taxonomy for variant allocation"""

from typing import List, Optional, Sequence


class AllocationError(Exception):
    """Base class for allocation engine errors"""


class AllocationValidationError(AllocationError):
    """Commit refused before any I/O: rules violated, nothing mutated."""

    def __init__(
        self,
        reasons: Sequence[str],
        missing_images: Optional[Sequence[str]] = None,
    ):
        self.reasons: List[str] = list(reasons)
        self.missing_images: List[str] = list(missing_images or [])
        super().__init__("; ".join(self.reasons) or "Allocation rejected")


class StaleAllocationError(AllocationValidationError):
    """Remaining stock shrank below the pending total since the snapshot was taken."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            [f"Requested {requested} units but only {available} remain unassigned"]
        )


class UploadFailure(AllocationError):
    """Image upload failed for one variant"""

    def __init__(self, variant_name: str, message: str):
        self.variant_name = variant_name
        super().__init__(f"Image upload failed for {variant_name}: {message}")


class StoreWriteFailure(AllocationError):
    """Insert or update of one variant record failed"""

    def __init__(self, variant_name: str, message: str):
        self.variant_name = variant_name
        super().__init__(f"Could not save {variant_name}: {message}")


class ConsolidationFailure(AllocationError):
    """Merging duplicate variant rows failed; left for the next pass"""


class SessionStateError(AllocationError):
    """Operation not allowed in the session's current state"""


class LocationNotFoundError(AllocationError):
    def __init__(self, location_id: int):
        self.location_id = location_id
        super().__init__(f"Location {location_id} not found")
