import pytest

from allocation_service.app.core.setting import get_settings
from allocation_service.app.models.location import LocationKind
from allocation_service.app.models.variant import VariantKind
from allocation_service.app.repository.attribute_repository import AttributeRepository
from allocation_service.app.repository.inventory_repository import InventoryRepository
from allocation_service.app.repository.location_repository import LocationRepository
from allocation_service.app.repository.variant_repository import VariantRepository
from allocation_service.app.schemas.inventory import InventoryUpsert, LocationCreate
from allocation_service.app.schemas.variant import (
    VariantAllocationWrite,
    VariantAttributeCreate,
)

PLACEHOLDER = get_settings().PLACEHOLDER_VARIANT_NAME
PRODUCT_ID = 21


def red_write(location_id: int, quantity: int) -> VariantAllocationWrite:
    return VariantAllocationWrite(
        product_id=PRODUCT_ID,
        location_id=location_id,
        kind=VariantKind.COLOR,
        name="أحمر",
        quantity=quantity,
    )


class TestLocationAndInventoryRepositories:
    async def test_create_and_list_locations(self, db_session):
        repository = LocationRepository(db_session)

        warehouse = await repository.create_location(
            LocationCreate(name="North Warehouse", kind=LocationKind.WAREHOUSE)
        )
        branch = await repository.create_location(LocationCreate(name="City Branch"))

        assert warehouse.id is not None
        assert branch.kind == LocationKind.BRANCH
        assert [loc.name for loc in await repository.list_locations()] == [
            "City Branch",
            "North Warehouse",
        ]
        assert [loc.id for loc in await repository.list_locations(LocationKind.WAREHOUSE)] == [
            warehouse.id
        ]

    async def test_upsert_inventory_updates_existing_record(self, db_session, seeder):
        first = await seeder.location("First")
        second = await seeder.location("Second")
        repository = InventoryRepository(db_session)

        created = await repository.upsert_inventory(
            InventoryUpsert(product_id=PRODUCT_ID, location_id=first.id, quantity=5)
        )
        updated = await repository.upsert_inventory(
            InventoryUpsert(
                product_id=PRODUCT_ID, location_id=first.id, quantity=9, min_stock=3
            )
        )
        await repository.upsert_inventory(
            InventoryUpsert(product_id=PRODUCT_ID, location_id=second.id, quantity=1)
        )

        assert updated.id == created.id
        assert (updated.quantity, updated.min_stock) == (9, 3)
        records = await repository.list_for_product(PRODUCT_ID)
        assert [(r.location_id, r.quantity) for r in records] == [(first.id, 9), (second.id, 1)]


class TestAttributeRepository:
    async def test_create_and_filter_by_kind(self, db_session):
        repository = AttributeRepository(db_session)

        await repository.create_attribute(
            VariantAttributeCreate(product_id=PRODUCT_ID, name="أحمر", color_hex="#DC2626")
        )
        await repository.create_attribute(
            VariantAttributeCreate(product_id=PRODUCT_ID, name="مربع", kind=VariantKind.SHAPE)
        )

        colors = await repository.list_attributes(PRODUCT_ID, VariantKind.COLOR)
        assert [(a.name, a.color_hex) for a in colors] == [("أحمر", "#DC2626")]
        assert len(await repository.list_attributes(PRODUCT_ID)) == 2


class TestVariantRepository:
    @pytest.fixture
    async def location(self, seeder):
        return await seeder.location("Harbour Branch")

    async def test_allocate_increments_stored_quantity(
        self, test_database_manager, seeder, location
    ):
        await seeder.variant(PRODUCT_ID, location.id, "أحمر", 3)
        maker = test_database_manager.async_session_maker

        async with maker() as first_db, maker() as second_db:
            first = VariantRepository(first_db)
            second = VariantRepository(second_db)
            loaded_early = (await first.list_variants(PRODUCT_ID, location.id))[0]

            other = (await second.list_variants(PRODUCT_ID, location.id))[0]
            await second.allocate(other, red_write(location.id, 4))

            variant = await first.allocate(loaded_early, red_write(location.id, 5))

        assert variant.quantity == 12
        assert [r.quantity for r in await seeder.variants(PRODUCT_ID, location.id)] == [12]

    async def test_allocate_draws_placeholders_down_to_zero(
        self, db_session, seeder, location
    ):
        await seeder.variant(PRODUCT_ID, location.id, PLACEHOLDER, 2)
        repository = VariantRepository(db_session)
        placeholder = (await repository.list_variants(PRODUCT_ID, location.id))[0]

        await repository.allocate(None, red_write(location.id, 3), [(placeholder, 5)])

        assert placeholder.quantity == 0
        rows = await seeder.variants(PRODUCT_ID, location.id)
        assert [(r.name, r.quantity) for r in rows] == [(PLACEHOLDER, 0), ("أحمر", 3)]

    async def test_delete_variants(self, db_session, seeder, location):
        keep = await seeder.variant(PRODUCT_ID, location.id, "أحمر", 1)
        drop = await seeder.variant(PRODUCT_ID, location.id, "أزرق", 1)
        repository = VariantRepository(db_session)

        assert await repository.delete_variants([]) == 0
        assert await repository.delete_variants([drop.id]) == 1
        assert [r.id for r in await seeder.variants(PRODUCT_ID, location.id)] == [keep.id]
