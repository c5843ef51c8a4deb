"""Variant allocation API endpoints"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Query

from ...models.variant import VariantKind
from ...schemas.allocation import (
    AllocationRequest,
    AllocationState,
    CommitResult,
    ConsolidationReport,
    LocationAllocationSummary,
    StagedImage,
    ValidationResult,
)
from ...schemas.variant import VariantAttributeResponse, VariantRecordResponse
from ...services.allocation_service import AllocationService
from ...utils.logging import setup_allocation_logging as setup_logging
from ..dependencies import AllocationServiceDep, CorrelationIdDep

logger = setup_logging("allocation_api")
router = APIRouter(prefix="/allocation")


def _staged_images(request: AllocationRequest) -> Dict[str, StagedImage]:
    return {payload.variant_name: payload.to_staged_image() for payload in request.images}


@router.get(
    "/products/{product_id}/locations",
    response_model=List[LocationAllocationSummary],
)
async def list_locations(
    product_id: int,
    only_unassigned: bool = Query(False),
    kind: VariantKind = Query(VariantKind.COLOR),
    service: AllocationService = AllocationServiceDep,
):
    """Allocation summary of every branch and warehouse for a product"""
    return await service.summarize_locations(product_id, kind, only_unassigned)


@router.get(
    "/products/{product_id}/locations/{location_id}/state",
    response_model=AllocationState,
)
async def get_location_state(
    product_id: int,
    location_id: int,
    kind: VariantKind = Query(VariantKind.COLOR),
    correlation_id: Optional[str] = CorrelationIdDep,
    service: AllocationService = AllocationServiceDep,
):
    """Consolidate the location and return what is left to assign"""
    return await service.get_state(product_id, location_id, kind, correlation_id)


@router.post(
    "/products/{product_id}/locations/{location_id}/consolidate",
    response_model=ConsolidationReport,
)
async def consolidate_location(
    product_id: int,
    location_id: int,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: AllocationService = AllocationServiceDep,
):
    return await service.consolidate(product_id, location_id, correlation_id)


@router.get(
    "/products/{product_id}/attributes",
    response_model=List[VariantAttributeResponse],
)
async def list_attributes(
    product_id: int,
    kind: Optional[VariantKind] = Query(None),
    service: AllocationService = AllocationServiceDep,
):
    """Color/shape catalog with images resolved from existing variants"""
    return await service.get_attributes(product_id, kind)


@router.get(
    "/products/{product_id}/locations/{location_id}/variants",
    response_model=List[VariantRecordResponse],
)
async def list_location_variants(
    product_id: int,
    location_id: int,
    kind: Optional[VariantKind] = Query(None),
    service: AllocationService = AllocationServiceDep,
):
    return await service.list_variants(product_id, location_id, kind)


@router.post(
    "/products/{product_id}/locations/{location_id}/validate",
    response_model=ValidationResult,
)
async def validate_allocation(
    product_id: int,
    location_id: int,
    request: AllocationRequest,
    service: AllocationService = AllocationServiceDep,
):
    """Check a proposed allocation without writing anything"""
    return await service.validate(
        product_id,
        location_id,
        request.deltas,
        _staged_images(request),
        request.kind,
    )


@router.post(
    "/products/{product_id}/locations/{location_id}/commit",
    response_model=CommitResult,
)
async def commit_allocation(
    product_id: int,
    location_id: int,
    request: AllocationRequest,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: AllocationService = AllocationServiceDep,
):
    """Save the proposed allocation.

    Variants are saved independently; the response lists which succeeded and
    which failed. A refused allocation returns 422 and changes nothing.
    """
    result = await service.commit(
        product_id,
        location_id,
        request.deltas,
        _staged_images(request),
        kind=request.kind,
        correlation_id=correlation_id,
    )

    if result.failed:
        logger.warning(
            "Allocation committed with failures",
            extra={
                "product_id": product_id,
                "location_id": location_id,
                "failed": result.failed_names,
                "correlation_id": correlation_id,
            },
        )

    return result
