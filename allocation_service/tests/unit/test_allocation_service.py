import asyncio

import pytest

from allocation_service.app.core.exceptions import (
    AllocationValidationError,
    LocationNotFoundError,
    SessionStateError,
)
from allocation_service.app.core.setting import get_settings
from allocation_service.app.models.location import LocationKind
from allocation_service.app.models.variant import VariantKind
from allocation_service.app.schemas.allocation import PendingDelta, StagedImage
from allocation_service.app.services.allocation_service import AllocationService
from allocation_service.app.services.allocation_session import (
    AllocationSession,
    SessionStatus,
)

PLACEHOLDER = get_settings().PLACEHOLDER_VARIANT_NAME
PRODUCT_ID = 3


@pytest.fixture
def service(db_session, blob_provider, lock_registry):
    return AllocationService(db_session, blob_provider, locks=lock_registry)


@pytest.fixture
async def branch(seeder):
    return await seeder.location("Mall Branch")


class TestAllocationSessionFlow:
    async def test_unknown_location(self, service):
        with pytest.raises(LocationNotFoundError):
            await service.start_session(PRODUCT_ID, 999)

    async def test_session_start_consolidates(self, service, seeder, branch):
        await seeder.inventory(PRODUCT_ID, branch.id, 12)
        await seeder.variant(PRODUCT_ID, branch.id, "أسود", 2)
        await seeder.variant(PRODUCT_ID, branch.id, "أسود", 3)

        session = await service.start_session(PRODUCT_ID, branch.id)

        assert session.status == SessionStatus.LOCATION_SELECTED
        assert session.state.specified_quantity == 5
        assert session.state.total_unspecified == 7
        assert len(await seeder.variants(PRODUCT_ID, branch.id)) == 1

    async def test_commit_session_keeps_failed_variants(
        self, service, seeder, branch, blob_provider
    ):
        await seeder.inventory(PRODUCT_ID, branch.id, 10)
        await seeder.attribute(PRODUCT_ID, "أسود", image_url="https://cdn.test/black.png")
        await seeder.attribute(PRODUCT_ID, "أبيض")
        blob_provider.failing = {"أبيض"}

        session = await service.start_session(PRODUCT_ID, branch.id)
        session.set_quantity("أسود", 4)
        session.set_quantity("أبيض", 2)
        session.stage_image(StagedImage(variant_name="أبيض", content=b"white"))

        result = await service.commit_session(session, correlation_id="corr-7")

        assert result.partial
        assert session.status == SessionStatus.LOCATION_SELECTED
        assert session.quantities == {"أبيض": 2}
        assert "أبيض" in session.images
        assert session.state.total_unspecified == 6

        # Retry once the blob store is back
        blob_provider.failing = set()
        retry = await service.commit_session(session)

        assert retry.failed == []
        assert session.quantities == {}
        assert session.state.total_unspecified == 4

    async def test_refused_commit_returns_session_to_editing(
        self, service, seeder, branch
    ):
        await seeder.inventory(PRODUCT_ID, branch.id, 10)
        await seeder.attribute(PRODUCT_ID, "أصفر")
        session = await service.start_session(PRODUCT_ID, branch.id)
        session.set_quantity("أصفر", 2)

        with pytest.raises(AllocationValidationError):
            await service.commit_session(session)

        assert session.status == SessionStatus.EDITING_DELTAS
        assert session.quantities == {"أصفر": 2}
        assert await seeder.variants(PRODUCT_ID, branch.id) == []

    async def test_validate_session(self, service, seeder, branch):
        await seeder.inventory(PRODUCT_ID, branch.id, 10)
        await seeder.attribute(PRODUCT_ID, "أصفر")
        await seeder.attribute(PRODUCT_ID, "أسود", image_url="https://cdn.test/black.png")
        session = await service.start_session(PRODUCT_ID, branch.id)
        session.set_quantity("أصفر", 2)
        session.set_quantity("أسود", 3)

        result = await service.validate_session(session)

        assert not result.can_commit
        assert result.total_assigned == 5
        assert result.missing_images == ["أصفر"]

        session.stage_image(StagedImage(variant_name="أصفر", content=b"yellow"))
        assert (await service.validate_session(session)).can_commit

    async def test_get_state_does_not_overwrite_concurrent_commit(
        self, test_database_manager, seeder, branch, blob_provider, lock_registry
    ):
        await seeder.inventory(PRODUCT_ID, branch.id, 20)
        await seeder.attribute(PRODUCT_ID, "أحمر", image_url="https://cdn.test/red.png")
        await seeder.variant(PRODUCT_ID, branch.id, "أحمر", 3)
        await seeder.variant(PRODUCT_ID, branch.id, "أحمر", 7)
        maker = test_database_manager.async_session_maker
        rows_read = asyncio.Event()
        resume = asyncio.Event()

        async with maker() as reader_db, maker() as writer_db:
            reader = AllocationService(reader_db, blob_provider, locks=lock_registry)
            writer = AllocationService(writer_db, blob_provider, locks=lock_registry)
            list_variants = reader.consolidation.repository.list_variants

            async def list_then_pause(*args, **kwargs):
                rows = await list_variants(*args, **kwargs)
                rows_read.set()
                await resume.wait()
                return rows

            reader.consolidation.repository.list_variants = list_then_pause

            state_task = asyncio.create_task(reader.get_state(PRODUCT_ID, branch.id))
            await rows_read.wait()
            commit_task = asyncio.create_task(
                writer.commit(PRODUCT_ID, branch.id, [PendingDelta(name="أحمر", quantity=5)])
            )
            for _ in range(20):
                await asyncio.sleep(0)
            assert not commit_task.done()

            resume.set()
            state = await state_task
            result = await commit_task

        assert state.specified_quantity == 10
        assert result.succeeded[0].new_quantity == 15
        rows = await seeder.variants(PRODUCT_ID, branch.id)
        assert [(r.name, r.quantity) for r in rows] == [("أحمر", 15)]

    async def test_validate_session_needs_location(self, service):
        with pytest.raises(SessionStateError):
            await service.validate_session(AllocationSession(product_id=PRODUCT_ID))


class TestAllocationQueries:
    async def test_summarize_locations(self, service, seeder):
        branch = await seeder.location("Branch")
        warehouse = await seeder.location("Warehouse", kind=LocationKind.WAREHOUSE)
        await seeder.inventory(PRODUCT_ID, branch.id, 5)
        await seeder.inventory(PRODUCT_ID, warehouse.id, 8)
        await seeder.variant(PRODUCT_ID, branch.id, "أحمر", 5, value="1234567890")
        await seeder.variant(PRODUCT_ID, warehouse.id, "أحمر", 2)
        await seeder.variant(PRODUCT_ID, warehouse.id, PLACEHOLDER, 3)

        summaries = await service.summarize_locations(PRODUCT_ID)
        open_only = await service.summarize_locations(PRODUCT_ID, only_unassigned=True)

        assert [s.location.name for s in summaries] == ["Branch", "Warehouse"]
        assert summaries[0].state.total_unspecified == 0
        assert summaries[0].variants[0].barcode == "1234567890"
        assert [v.name for v in summaries[1].variants] == ["أحمر"]
        assert summaries[1].state.total_unspecified == 6
        assert [s.location.id for s in open_only] == [warehouse.id]

    async def test_list_variants_decodes_values(self, service, seeder, branch):
        await seeder.variant(
            PRODUCT_ID,
            branch.id,
            "أحمر",
            2,
            value='{"barcode": "4444444444", "image": "https://cdn.test/r.png"}',
        )

        records = await service.list_variants(PRODUCT_ID, branch.id)

        assert records[0].barcode == "4444444444"
        assert records[0].image_url == "https://cdn.test/r.png"

    async def test_attributes_borrow_variant_images(self, service, seeder, branch):
        await seeder.attribute(PRODUCT_ID, "أحمر")
        await seeder.attribute(PRODUCT_ID, "أزرق", color_hex="#1D4ED8")
        await seeder.attribute(PRODUCT_ID, "دائري", kind=VariantKind.SHAPE)
        await seeder.variant(
            PRODUCT_ID,
            branch.id,
            "أحمر",
            1,
            value='{"barcode": "1", "image": "https://cdn.test/red.png"}',
        )

        colors = await service.get_attributes(PRODUCT_ID, VariantKind.COLOR)

        by_name = {attribute.name: attribute for attribute in colors}
        assert set(by_name) == {"أحمر", "أزرق"}
        assert by_name["أحمر"].image_url == "https://cdn.test/red.png"
        assert by_name["أحمر"].color_hex == "#6B7280"
        assert by_name["أزرق"].image_url is None
        assert by_name["أزرق"].color_hex == "#1D4ED8"

    async def test_validate_without_writes(self, service, seeder, branch):
        await seeder.inventory(PRODUCT_ID, branch.id, 3)
        await seeder.attribute(PRODUCT_ID, "أحمر", image_url="https://cdn.test/red.png")

        result = await service.validate(
            PRODUCT_ID, branch.id, [PendingDelta(name="أحمر", quantity=4)]
        )

        assert not result.can_commit
        assert result.state.total_unspecified == 3
        assert await seeder.variants(PRODUCT_ID, branch.id) == []
