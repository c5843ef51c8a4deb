import pytest

from allocation_service.app.models.variant import VariantKind
from allocation_service.app.schemas.allocation import PendingDelta, StagedImage
from allocation_service.app.schemas.variant import VariantAttributeBase
from allocation_service.app.services.gating_validator import find_attribute, missing_images


class TestMissingImages:
    @pytest.fixture
    def catalog(self):
        return [
            VariantAttributeBase(name="أحمر", image_url="https://cdn.test/red.png"),
            VariantAttributeBase(name="أصفر"),
            VariantAttributeBase(name="أزرق", image_url="   "),
            VariantAttributeBase(kind=VariantKind.SHAPE, name="دائري"),
        ]

    def test_catalog_image_satisfies_gate(self, catalog):
        assert missing_images([PendingDelta(name="أحمر", quantity=3)], catalog) == []

    def test_variant_without_any_image_is_missing(self, catalog):
        missing = missing_images([PendingDelta(name="أصفر", quantity=2)], catalog)

        assert [attribute.name for attribute in missing] == ["أصفر"]

    def test_blank_catalog_image_does_not_count(self, catalog):
        missing = missing_images([PendingDelta(name="أزرق", quantity=1)], catalog)

        assert [attribute.name for attribute in missing] == ["أزرق"]

    def test_staged_session_image_satisfies_gate(self, catalog):
        image = StagedImage(variant_name="أصفر", content=b"img")

        missing = missing_images(
            [PendingDelta(name="أصفر", quantity=2)], catalog, {"أصفر": image}
        )

        assert missing == []

    def test_session_image_url_string_counts(self, catalog):
        missing = missing_images(
            [PendingDelta(name="أصفر", quantity=2)],
            catalog,
            {"أصفر": "blob:local-preview"},
        )

        assert missing == []

    def test_zero_quantity_deltas_are_not_gated(self, catalog):
        assert missing_images([PendingDelta(name="أصفر", quantity=0)], catalog) == []

    def test_unknown_name_is_reported(self, catalog):
        missing = missing_images([PendingDelta(name="بنفسجي", quantity=1)], catalog)

        assert missing[0].name == "بنفسجي"
        assert missing[0].kind == VariantKind.COLOR

    def test_attribute_lookup_respects_kind(self, catalog):
        shape = PendingDelta(kind=VariantKind.SHAPE, name="دائري", quantity=1)
        mismatched = PendingDelta(kind=VariantKind.COLOR, name="دائري", quantity=1)

        assert find_attribute(catalog, shape).kind == VariantKind.SHAPE
        assert find_attribute(catalog, mismatched) is None
