"""Applies a session's pending deltas to the variant rows of one location"""

import asyncio
import weakref
from typing import List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    AllocationValidationError,
    StaleAllocationError,
    StoreWriteFailure,
    UploadFailure,
)
from ..core.setting import AllocationSettings, get_settings
from ..models.variant import ProductVariant, VariantKind
from ..providers.blob_provider import BlobProvider
from ..repository.inventory_repository import InventoryRepository
from ..repository.variant_repository import VariantRepository
from ..schemas.allocation import (
    AllocationState,
    CommitResult,
    PendingDelta,
    StagedImage,
    VariantOutcome,
)
from ..schemas.variant import VariantAllocationWrite, VariantAttributeResponse
from ..schemas.variant_value import (
    decode_variant_value,
    encode_variant_value,
    generate_barcode,
    make_variant_value,
    with_image,
)
from ..utils.logging import setup_allocation_logging as setup_logging
from .allocation_calculator import (
    commit_rejections,
    compute_state,
    placeholder_draws,
    total_pending,
)
from .attribute_catalog import AttributeCatalogService
from .consolidation_service import ConsolidationService
from .gating_validator import find_attribute, missing_images

logger = setup_logging("allocation_service.commit", log_level=get_settings().LOG_LEVEL)


class LocationLockRegistry:
    """One asyncio lock per (product, location), kept only while someone holds it"""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[Tuple[int, int], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, product_id: int, location_id: int) -> asyncio.Lock:
        key = (product_id, location_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


location_locks = LocationLockRegistry()


class CommitOrchestrator:
    """Commits allocation deltas variant by variant.

    Validation happens up front and refuses the whole commit. After that each
    variant is an independent unit of work: an upload or write failure is
    reported in ``CommitResult.failed`` and never undoes its siblings.
    """

    def __init__(
        self,
        db: AsyncSession,
        blob_provider: BlobProvider,
        settings: Optional[AllocationSettings] = None,
        locks: Optional[LocationLockRegistry] = None,
    ):
        self.db = db
        self.blob_provider = blob_provider
        self.settings = settings or get_settings()
        self.locks = locks if locks is not None else location_locks
        self.inventory = InventoryRepository(db)
        self.variants = VariantRepository(db)
        self.consolidation = ConsolidationService(db)
        self.catalog = AttributeCatalogService(db)

    async def load_state(
        self, product_id: int, location_id: int, kind: VariantKind = VariantKind.COLOR
    ) -> AllocationState:
        inventory = await self.inventory.get_inventory(product_id, location_id)
        variants = await self.variants.list_variants(product_id, location_id, kind)
        return compute_state(
            inventory, variants, kind, self.settings.PLACEHOLDER_VARIANT_NAME
        )

    async def commit(
        self,
        product_id: int,
        location_id: int,
        pending_deltas: Sequence[PendingDelta],
        staged_images: Optional[Mapping[str, StagedImage]] = None,
        kind: VariantKind = VariantKind.COLOR,
        snapshot: Optional[AllocationState] = None,
        correlation_id: Optional[str] = None,
    ) -> CommitResult:
        staged_images = staged_images or {}
        deltas = [delta for delta in pending_deltas if delta.quantity > 0]

        async with self.locks.lock_for(product_id, location_id):
            await self.consolidation.consolidate(product_id, location_id, correlation_id)

            state = await self.load_state(product_id, location_id, kind)
            catalog = await self.catalog.get_attributes(product_id, kind)
            self._validate(deltas, state, catalog, staged_images, snapshot)

            result = CommitResult(product_id=product_id, location_id=location_id)
            for delta in deltas:
                outcome = await self._apply_delta(
                    product_id,
                    location_id,
                    delta,
                    staged_images.get(delta.name),
                    find_attribute(catalog, delta),
                    correlation_id,
                )
                if outcome.error is None:
                    result.succeeded.append(outcome)
                else:
                    result.failed.append(outcome)

            await self.consolidation.consolidate(product_id, location_id, correlation_id)
            result.state = await self.load_state(product_id, location_id, kind)

        logger.info(
            "Allocation commit finished",
            extra={
                "product_id": product_id,
                "location_id": location_id,
                "succeeded": [outcome.name for outcome in result.succeeded],
                "failed": result.failed_names,
                "total_unspecified": result.state.total_unspecified,
                "correlation_id": correlation_id,
            },
        )
        return result

    def _validate(
        self,
        deltas: List[PendingDelta],
        state: AllocationState,
        catalog: List[VariantAttributeResponse],
        staged_images: Mapping[str, StagedImage],
        snapshot: Optional[AllocationState],
    ) -> None:
        requested = total_pending(deltas)
        if (
            snapshot is not None
            and state.total_unspecified < requested <= snapshot.total_unspecified
        ):
            raise StaleAllocationError(requested, state.total_unspecified)

        missing = [
            attribute.name
            for attribute in missing_images(deltas, catalog, staged_images)
        ]
        reasons = commit_rejections(
            deltas,
            state,
            missing,
            known_names=[attribute.name for attribute in catalog] or None,
            placeholder_name=self.settings.PLACEHOLDER_VARIANT_NAME,
        )
        if reasons:
            raise AllocationValidationError(reasons, missing)

    async def _apply_delta(
        self,
        product_id: int,
        location_id: int,
        delta: PendingDelta,
        image: Optional[StagedImage],
        attribute: Optional[VariantAttributeResponse],
        correlation_id: Optional[str],
    ) -> VariantOutcome:
        outcome = VariantOutcome(kind=delta.kind, name=delta.name, quantity=delta.quantity)
        log_extra = {
            "product_id": product_id,
            "location_id": location_id,
            "variant_name": delta.name,
            "quantity": delta.quantity,
            "correlation_id": correlation_id,
        }

        uploaded_url: Optional[str] = None
        if image is not None:
            try:
                uploaded = await self.blob_provider.upload(
                    image, self.settings.VARIANT_IMAGE_BUCKET
                )
                uploaded_url = uploaded.public_url
            except Exception as e:
                failure = UploadFailure(delta.name, str(e))
                logger.error(str(failure), extra={**log_extra, "stage": "upload"}, exc_info=True)
                outcome.stage, outcome.error = "upload", str(failure)
                return outcome

        try:
            # Re-read per variant: earlier siblings changed the rows
            inventory = await self.inventory.get_inventory(product_id, location_id)
            rows = await self.variants.list_variants(product_id, location_id, delta.kind)
            state = compute_state(
                inventory, rows, delta.kind, self.settings.PLACEHOLDER_VARIANT_NAME
            )
            if delta.quantity > state.total_unspecified:
                stale = StaleAllocationError(delta.quantity, state.total_unspecified)
                logger.error(str(stale), extra={**log_extra, "stage": "stock"})
                outcome.stage, outcome.error = "stock", str(stale)
                return outcome

            target = next((row for row in rows if row.name == delta.name), None)
            draws = placeholder_draws(
                rows,
                delta.quantity - state.unassigned_quantity,
                delta.kind,
                self.settings.PLACEHOLDER_VARIANT_NAME,
            )
            write = VariantAllocationWrite(
                product_id=product_id,
                location_id=location_id,
                kind=delta.kind,
                name=delta.name,
                quantity=delta.quantity,
                value=self._encoded_value(target, delta, uploaded_url, attribute),
                color_hex=self._color_hex(delta, attribute),
            )
            variant = await self.variants.allocate(target, write, draws)
        except SQLAlchemyError as e:
            failure = StoreWriteFailure(delta.name, str(e))
            logger.error(str(failure), extra={**log_extra, "stage": "write"}, exc_info=True)
            outcome.stage, outcome.error = "write", str(failure)
            return outcome

        outcome.variant_id = variant.id
        outcome.new_quantity = variant.quantity
        outcome.image_url = decode_variant_value(variant.value).image_url

        logger.info(
            "Variant allocation saved",
            extra={
                **log_extra,
                "variant_id": variant.id,
                "new_quantity": variant.quantity,
                "created": target is None,
            },
        )
        return outcome

    def _encoded_value(
        self,
        target: Optional[ProductVariant],
        delta: PendingDelta,
        uploaded_url: Optional[str],
        attribute: Optional[VariantAttributeResponse],
    ) -> Optional[str]:
        """Value column for the write; None leaves an existing row's value alone"""
        if target is not None:
            if uploaded_url is None:
                return None
            current = decode_variant_value(target.value)
            if not current.barcode:
                current = make_variant_value(delta.barcode or generate_barcode())
            return encode_variant_value(with_image(current, uploaded_url))

        image_url = uploaded_url
        if image_url is None and attribute is not None and attribute.has_image:
            image_url = attribute.image_url
        return encode_variant_value(
            make_variant_value(delta.barcode or generate_barcode(), image_url)
        )

    def _color_hex(
        self, delta: PendingDelta, attribute: Optional[VariantAttributeResponse]
    ) -> Optional[str]:
        if attribute is not None and attribute.color_hex:
            return attribute.color_hex
        if delta.kind == VariantKind.COLOR:
            return self.settings.DEFAULT_COLOR_HEX
        return None
