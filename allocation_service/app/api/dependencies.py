"""
FastAPI dependency injection for Allocation Service

Provides database sessions, the blob store, the allocation service and
correlation ID extraction.
"""

from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db_session
from ..core.setting import get_settings
from ..providers.blob_provider import BlobProvider, create_blob_provider
from ..services.allocation_service import AllocationService

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in get_db_session():
        yield session


# =====================================================
# BLOB STORE DEPENDENCIES
# =====================================================


@lru_cache
def get_blob_provider() -> BlobProvider:
    """Provide the configured blob provider, built once"""
    return create_blob_provider(get_settings())


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_allocation_service(
    session: AsyncSession = Depends(get_async_session),
    blob_provider: BlobProvider = Depends(get_blob_provider),
) -> AllocationService:
    """Provide AllocationService instance with database and blob store"""
    return AllocationService(session, blob_provider)


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers or state"""
    correlation_id = (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("correlation-id")
        or request.headers.get("x-request-id")
    )

    if not correlation_id:
        correlation_id = getattr(request.state, "request_id", None)

    return correlation_id


# =====================================================
# COMMON DEPENDENCY ALIASES
# =====================================================

CorrelationIdDep = Depends(get_correlation_id)
AllocationServiceDep = Depends(get_allocation_service)
