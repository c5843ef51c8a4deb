"""Editing session for assigning one location's stock to variants"""

import enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.exceptions import SessionStateError
from ..models.variant import VariantKind
from ..schemas.allocation import AllocationState, CommitResult, PendingDelta, StagedImage
from .allocation_calculator import max_quantity_for


class SessionStatus(str, enum.Enum):
    NO_LOCATION_SELECTED = "no_location_selected"
    LOCATION_SELECTED = "location_selected"
    EDITING_DELTAS = "editing_deltas"
    COMMITTING = "committing"


class AllocationSession(BaseModel):
    """Pending quantities and staged images for one product at one location.

    The snapshot in ``state`` is only used to bound inputs; commits always
    re-derive state from the store.
    """

    product_id: int
    kind: VariantKind = VariantKind.COLOR
    location_id: Optional[int] = None
    state: Optional[AllocationState] = None
    quantities: Dict[str, int] = Field(default_factory=dict)
    barcodes: Dict[str, str] = Field(default_factory=dict)
    images: Dict[str, StagedImage] = Field(default_factory=dict)
    status: SessionStatus = SessionStatus.NO_LOCATION_SELECTED

    def select_location(self, location_id: int, state: AllocationState) -> None:
        self._ensure_not_committing()
        self.location_id = location_id
        self.state = state
        self.quantities = {}
        self.barcodes = {}
        self.images = {}
        self.status = SessionStatus.LOCATION_SELECTED

    def clear_location(self) -> None:
        self._ensure_not_committing()
        self.location_id = None
        self.state = None
        self.quantities = {}
        self.barcodes = {}
        self.images = {}
        self.status = SessionStatus.NO_LOCATION_SELECTED

    def max_quantity_for(self, name: str) -> int:
        self._ensure_location()
        return max_quantity_for(self.state, self.pending_deltas(), name)

    def set_quantity(self, name: str, quantity: int) -> int:
        """Set the pending quantity for ``name``, clamped to what is allocatable"""
        self._ensure_location()
        self._ensure_not_committing()
        quantity = min(max(0, quantity), self.max_quantity_for(name))
        if quantity:
            self.quantities[name] = quantity
        else:
            self.quantities.pop(name, None)
        self.status = SessionStatus.EDITING_DELTAS
        return quantity

    def set_barcode(self, name: str, barcode: str) -> None:
        self._ensure_location()
        self._ensure_not_committing()
        self.barcodes[name] = barcode
        self.status = SessionStatus.EDITING_DELTAS

    def stage_image(self, image: StagedImage) -> None:
        self._ensure_location()
        self._ensure_not_committing()
        self.images[image.variant_name] = image
        self.status = SessionStatus.EDITING_DELTAS

    @property
    def total_assigned(self) -> int:
        return sum(self.quantities.values())

    @property
    def remaining(self) -> int:
        if self.state is None:
            return 0
        return self.state.total_unspecified - self.total_assigned

    def pending_deltas(self) -> List[PendingDelta]:
        return [
            PendingDelta(
                kind=self.kind,
                name=name,
                quantity=quantity,
                barcode=self.barcodes.get(name),
            )
            for name, quantity in self.quantities.items()
            if quantity > 0
        ]

    def begin_commit(self) -> None:
        if self.status == SessionStatus.EDITING_DELTAS or (
            self.status == SessionStatus.LOCATION_SELECTED and self.quantities
        ):
            self.status = SessionStatus.COMMITTING
            return
        raise SessionStateError(f"Cannot commit from state {self.status.value}")

    def abort_commit(self) -> None:
        """Back to editing after a refused commit; nothing was written"""
        if self.status != SessionStatus.COMMITTING:
            raise SessionStateError(f"No commit in progress ({self.status.value})")
        self.status = SessionStatus.EDITING_DELTAS

    def finish_commit(self, result: CommitResult) -> None:
        """Drop what was saved, keep failed variants for a retry"""
        if self.status != SessionStatus.COMMITTING:
            raise SessionStateError(f"No commit in progress ({self.status.value})")

        for outcome in result.succeeded:
            self.quantities.pop(outcome.name, None)
            self.barcodes.pop(outcome.name, None)
            self.images.pop(outcome.name, None)

        if result.state is not None:
            self.state = result.state
        self.status = SessionStatus.LOCATION_SELECTED

    def _ensure_location(self) -> None:
        if self.location_id is None or self.state is None:
            raise SessionStateError("No location selected")

    def _ensure_not_committing(self) -> None:
        if self.status == SessionStatus.COMMITTING:
            raise SessionStateError("A commit is in progress")
