"""Allocation service: entry points used by the API and by editing sessions"""

from typing import List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import LocationNotFoundError, SessionStateError
from ..core.setting import AllocationSettings, get_settings
from ..models.location import Location
from ..models.variant import VariantKind
from ..providers.blob_provider import BlobProvider
from ..repository.location_repository import LocationRepository
from ..repository.variant_repository import VariantRepository
from ..schemas.allocation import (
    AllocationState,
    CommitResult,
    ConsolidationReport,
    LocationAllocationSummary,
    PendingDelta,
    StagedImage,
    ValidationResult,
)
from ..schemas.inventory import LocationResponse
from ..schemas.variant import VariantAttributeResponse, VariantRecordResponse
from ..utils.logging import setup_allocation_logging as setup_logging
from .allocation_calculator import commit_rejections, total_pending
from .allocation_session import AllocationSession
from .attribute_catalog import AttributeCatalogService
from .commit_service import CommitOrchestrator, LocationLockRegistry
from .consolidation_service import ConsolidationService
from .gating_validator import SessionImages, missing_images

logger = setup_logging("allocation_service.service", log_level=get_settings().LOG_LEVEL)


class AllocationService:
    """Service class for variant allocation"""

    def __init__(
        self,
        db: AsyncSession,
        blob_provider: BlobProvider,
        settings: Optional[AllocationSettings] = None,
        locks: Optional[LocationLockRegistry] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.locations = LocationRepository(db)
        self.variants = VariantRepository(db)
        self.consolidation = ConsolidationService(db)
        self.catalog = AttributeCatalogService(db)
        self.orchestrator = CommitOrchestrator(db, blob_provider, self.settings, locks)

    async def _require_location(self, location_id: int) -> Location:
        location = await self.locations.get_location(location_id)
        if location is None:
            raise LocationNotFoundError(location_id)
        return location

    async def consolidate(
        self, product_id: int, location_id: int, correlation_id: Optional[str] = None
    ) -> ConsolidationReport:
        await self._require_location(location_id)
        async with self.orchestrator.locks.lock_for(product_id, location_id):
            return await self.consolidation.consolidate(
                product_id, location_id, correlation_id
            )

    async def get_state(
        self,
        product_id: int,
        location_id: int,
        kind: VariantKind = VariantKind.COLOR,
        correlation_id: Optional[str] = None,
    ) -> AllocationState:
        """Consolidate the location, then derive its state"""
        await self._require_location(location_id)
        # Merges write absolute quantities; a commit must not run in between
        async with self.orchestrator.locks.lock_for(product_id, location_id):
            await self.consolidation.consolidate(product_id, location_id, correlation_id)
            return await self.orchestrator.load_state(product_id, location_id, kind)

    async def start_session(
        self,
        product_id: int,
        location_id: int,
        kind: VariantKind = VariantKind.COLOR,
        correlation_id: Optional[str] = None,
    ) -> AllocationSession:
        state = await self.get_state(product_id, location_id, kind, correlation_id)
        session = AllocationSession(product_id=product_id, kind=kind)
        session.select_location(location_id, state)

        logger.info(
            "Allocation session started",
            extra={
                "product_id": product_id,
                "location_id": location_id,
                "variant_kind": kind.value,
                "total_unspecified": state.total_unspecified,
                "correlation_id": correlation_id,
            },
        )
        return session

    async def summarize_locations(
        self,
        product_id: int,
        kind: VariantKind = VariantKind.COLOR,
        only_unassigned: bool = False,
    ) -> List[LocationAllocationSummary]:
        """One summary per location: state plus the named variants held there"""
        placeholder = self.settings.PLACEHOLDER_VARIANT_NAME
        summaries: List[LocationAllocationSummary] = []

        for location in await self.locations.list_locations():
            state = await self.orchestrator.load_state(product_id, location.id, kind)
            if only_unassigned and state.total_unspecified <= 0:
                continue

            rows = await self.variants.list_variants(product_id, location.id, kind)
            summaries.append(
                LocationAllocationSummary(
                    location=LocationResponse.model_validate(location),
                    state=state,
                    variants=[
                        VariantRecordResponse.from_model(row)
                        for row in rows
                        if row.name != placeholder
                    ],
                )
            )
        return summaries

    async def list_variants(
        self, product_id: int, location_id: int, kind: Optional[VariantKind] = None
    ) -> List[VariantRecordResponse]:
        await self._require_location(location_id)
        rows = await self.variants.list_variants(product_id, location_id, kind)
        return [VariantRecordResponse.from_model(row) for row in rows]

    async def get_attributes(
        self, product_id: int, kind: Optional[VariantKind] = None
    ) -> List[VariantAttributeResponse]:
        return await self.catalog.get_attributes(product_id, kind)

    async def validate(
        self,
        product_id: int,
        location_id: int,
        pending_deltas: Sequence[PendingDelta],
        session_images: Optional[SessionImages] = None,
        kind: VariantKind = VariantKind.COLOR,
    ) -> ValidationResult:
        """Dry run of the commit checks; writes nothing"""
        await self._require_location(location_id)
        state = await self.orchestrator.load_state(product_id, location_id, kind)
        catalog = await self.catalog.get_attributes(product_id, kind)

        missing = [
            attribute.name
            for attribute in missing_images(pending_deltas, catalog, session_images)
        ]
        reasons = commit_rejections(
            pending_deltas,
            state,
            missing,
            known_names=[attribute.name for attribute in catalog] or None,
            placeholder_name=self.settings.PLACEHOLDER_VARIANT_NAME,
        )
        return ValidationResult(
            can_commit=not reasons,
            total_assigned=total_pending(pending_deltas),
            missing_images=missing,
            reasons=reasons,
            state=state,
        )

    async def validate_session(self, session: AllocationSession) -> ValidationResult:
        if session.location_id is None:
            raise SessionStateError("No location selected")
        return await self.validate(
            session.product_id,
            session.location_id,
            session.pending_deltas(),
            session.images,
            session.kind,
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
        await self._require_location(location_id)
        return await self.orchestrator.commit(
            product_id,
            location_id,
            pending_deltas,
            staged_images,
            kind=kind,
            snapshot=snapshot,
            correlation_id=correlation_id,
        )

    async def commit_session(
        self, session: AllocationSession, correlation_id: Optional[str] = None
    ) -> CommitResult:
        """Commit a session's deltas; saved variants leave the session, failed ones stay"""
        session.begin_commit()
        try:
            result = await self.commit(
                session.product_id,
                session.location_id,
                session.pending_deltas(),
                session.images,
                kind=session.kind,
                snapshot=session.state,
                correlation_id=correlation_id,
            )
        except Exception as e:
            session.abort_commit()
            logger.error(
                f"Allocation commit aborted: {e}",
                extra={
                    "product_id": session.product_id,
                    "location_id": session.location_id,
                    "error_type": type(e).__name__,
                    "correlation_id": correlation_id,
                },
            )
            raise

        session.finish_commit(result)
        return result
