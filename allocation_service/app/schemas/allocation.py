import base64
import binascii
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..models.variant import VariantKind
from .inventory import LocationResponse
from .variant import VariantRecordResponse


class AllocationState(BaseModel):
    """Derived quantities for one (product, location, kind)"""

    model_config = ConfigDict(frozen=True)

    kind: VariantKind = VariantKind.COLOR
    total_quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    specified_quantity: int = Field(default=0, ge=0)
    placeholder_quantity: int = Field(default=0, ge=0)
    unassigned_quantity: int = Field(default=0, ge=0)
    total_unspecified: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_low_stock(self) -> bool:
        return self.min_stock > 0 and self.total_quantity <= self.min_stock

    def assignment_percentage(self, total_assigned: int) -> float:
        """Share of the allocatable stock covered by ``total_assigned``, capped at 100."""
        if self.total_unspecified == 0:
            return 0.0
        return min(total_assigned / self.total_unspecified * 100, 100.0)


class PendingDelta(BaseModel):
    """Quantity proposed for one variant in the current editing session"""

    kind: VariantKind = VariantKind.COLOR
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(default=0, ge=0)
    barcode: Optional[str] = Field(default=None, max_length=64)


class StagedImage(BaseModel):
    """Image picked in the session, not uploaded yet"""

    variant_name: str
    filename: str = "variant.jpg"
    content_type: str = "image/jpeg"
    content: bytes = Field(..., repr=False)

    @classmethod
    def from_base64(
        cls,
        variant_name: str,
        data: str,
        filename: str = "variant.jpg",
        content_type: Optional[str] = None,
    ) -> "StagedImage":
        """Build from a base64 payload, with or without a ``data:`` URL prefix."""
        if data.startswith("data:") and "," in data:
            header, data = data.split(",", 1)
            if content_type is None:
                content_type = header[5:].split(";")[0] or None

        try:
            content = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid image data for {variant_name}: {e}") from e

        if not content:
            raise ValueError(f"Empty image for {variant_name}")

        return cls(
            variant_name=variant_name,
            filename=filename,
            content_type=content_type or "image/jpeg",
            content=content,
        )


class StagedImagePayload(BaseModel):
    variant_name: str = Field(..., min_length=1)
    filename: str = "variant.jpg"
    content_type: Optional[str] = None
    data: str = Field(..., description="Base64 image, optionally as a data URL")

    def to_staged_image(self) -> StagedImage:
        return StagedImage.from_base64(
            self.variant_name, self.data, self.filename, self.content_type
        )


class AllocationRequest(BaseModel):
    kind: VariantKind = VariantKind.COLOR
    deltas: List[PendingDelta] = Field(default_factory=list)
    images: List[StagedImagePayload] = Field(default_factory=list)


class ValidationResult(BaseModel):
    can_commit: bool
    total_assigned: int
    missing_images: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    state: AllocationState


class VariantOutcome(BaseModel):
    kind: VariantKind
    name: str
    quantity: int
    variant_id: Optional[int] = None
    new_quantity: Optional[int] = None
    image_url: Optional[str] = None
    stage: Optional[str] = None
    error: Optional[str] = None


class CommitResult(BaseModel):
    product_id: int
    location_id: int
    succeeded: List[VariantOutcome] = Field(default_factory=list)
    failed: List[VariantOutcome] = Field(default_factory=list)
    state: Optional[AllocationState] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    @property
    def failed_names(self) -> List[str]:
        return [outcome.name for outcome in self.failed]


class ConsolidationReport(BaseModel):
    product_id: int
    location_id: int
    merged_groups: int = 0
    removed_rows: int = 0
    failed_groups: List[str] = Field(default_factory=list)


class LocationAllocationSummary(BaseModel):
    location: LocationResponse
    state: AllocationState
    variants: List[VariantRecordResponse] = Field(default_factory=list)
