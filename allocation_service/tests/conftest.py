"""
Pytest configuration and fixtures for allocation service tests.
"""

import os
from typing import Any, AsyncGenerator, Dict, List, Optional, Set

import pytest
from sqlalchemy import select

# Set up test environment variables before importing anything else
os.environ.setdefault("APP_NAME", "Allocation Service Test")
os.environ.setdefault("APP_VERSION", "1.0.0")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SERVICE_NAME", "allocation-service")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault(
    "ALLOCATION_DATABASE_URL", "sqlite+aiosqlite:///./test_allocation.db"
)
os.environ.setdefault("BLOB_PROVIDER", "local")
os.environ.setdefault("MEDIA_ROOT", "test_media")
os.environ.setdefault("MEDIA_BASE_URL", "http://testserver/media")

from allocation_service.app.core.database import AllocationDatabaseManager
from allocation_service.app.core.setting import get_settings
from allocation_service.app.models import (
    InventoryRecord,
    Location,
    LocationKind,
    ProductVariant,
    VariantAttribute,
    VariantKind,
)
from allocation_service.app.providers.blob_provider import UploadedBlob
from allocation_service.app.repository.attribute_repository import AttributeRepository
from allocation_service.app.repository.inventory_repository import InventoryRepository
from allocation_service.app.repository.location_repository import LocationRepository
from allocation_service.app.schemas.allocation import StagedImage
from allocation_service.app.schemas.inventory import InventoryUpsert, LocationCreate
from allocation_service.app.schemas.variant import VariantAttributeCreate
from allocation_service.app.services.commit_service import LocationLockRegistry

PLACEHOLDER = get_settings().PLACEHOLDER_VARIANT_NAME


class FakeBlobProvider:
    """In-memory blob store; uploads for names in ``failing`` raise"""

    def __init__(self, failing: Optional[Set[str]] = None):
        self.failing = failing or set()
        self.uploads: List[Dict[str, Any]] = []

    async def upload(self, image: StagedImage, bucket: str) -> UploadedBlob:
        if image.variant_name in self.failing:
            raise ConnectionError("blob store unreachable")
        path = f"{bucket}/{len(self.uploads) + 1}-{image.filename}"
        self.uploads.append(
            {"variant_name": image.variant_name, "bucket": bucket, "path": path}
        )
        return UploadedBlob(path=path, public_url=f"https://cdn.test/{path}")


class StockSeeder:
    """Writes reference rows through its own session, like the product editor would"""

    def __init__(self, session_maker: Any):
        self.session_maker = session_maker

    async def _add(self, row: Any) -> Any:
        async with self.session_maker() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row

    async def location(
        self, name: str = "Main Branch", kind: LocationKind = LocationKind.BRANCH
    ) -> Location:
        async with self.session_maker() as session:
            return await LocationRepository(session).create_location(
                LocationCreate(name=name, kind=kind)
            )

    async def inventory(
        self, product_id: int, location_id: int, quantity: int, min_stock: int = 0
    ) -> InventoryRecord:
        async with self.session_maker() as session:
            return await InventoryRepository(session).upsert_inventory(
                InventoryUpsert(
                    product_id=product_id,
                    location_id=location_id,
                    quantity=quantity,
                    min_stock=min_stock,
                )
            )

    async def attribute(
        self,
        product_id: int,
        name: str,
        image_url: Optional[str] = None,
        kind: VariantKind = VariantKind.COLOR,
        color_hex: Optional[str] = None,
    ) -> VariantAttribute:
        async with self.session_maker() as session:
            return await AttributeRepository(session).create_attribute(
                VariantAttributeCreate(
                    product_id=product_id,
                    kind=kind,
                    name=name,
                    color_hex=color_hex,
                    image_url=image_url,
                )
            )

    async def variant(
        self,
        product_id: int,
        location_id: int,
        name: str,
        quantity: int,
        value: Optional[str] = None,
        kind: VariantKind = VariantKind.COLOR,
    ) -> ProductVariant:
        return await self._add(
            ProductVariant(
                product_id=product_id,
                location_id=location_id,
                kind=kind,
                name=name,
                quantity=quantity,
                value=value,
            )
        )

    async def variants(
        self, product_id: int, location_id: int, kind: Optional[VariantKind] = None
    ) -> List[ProductVariant]:
        async with self.session_maker() as session:
            query = (
                select(ProductVariant)
                .where(
                    ProductVariant.product_id == product_id,
                    ProductVariant.location_id == location_id,
                )
                .order_by(ProductVariant.id)
            )
            if kind is not None:
                query = query.where(ProductVariant.kind == kind)
            result = await session.execute(query)
            return list(result.scalars().all())


@pytest.fixture
async def test_database_manager(tmp_path) -> AsyncGenerator[AllocationDatabaseManager, None]:
    """Throwaway SQLite database per test."""
    manager = AllocationDatabaseManager(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'allocation.db'}", echo=False
    )
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
async def db_session(test_database_manager) -> AsyncGenerator[Any, None]:
    async with test_database_manager.async_session_maker() as session:
        yield session


@pytest.fixture
def seeder(test_database_manager) -> StockSeeder:
    return StockSeeder(test_database_manager.async_session_maker)


@pytest.fixture
def blob_provider() -> FakeBlobProvider:
    return FakeBlobProvider()


@pytest.fixture
def lock_registry() -> LocationLockRegistry:
    return LocationLockRegistry()


@pytest.fixture
def red_image() -> StagedImage:
    return StagedImage(
        variant_name="أحمر",
        filename="red.png",
        content_type="image/png",
        content=b"\x89PNG fake",
    )
