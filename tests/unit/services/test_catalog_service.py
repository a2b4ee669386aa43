from decimal import Decimal
from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock, Mock

from app.core.exceptions import DatabaseError
from app.services.estimation.catalog_service import CatalogResolutionService


@pytest.fixture
def region_repository():
    repository = Mock()
    repository.find_match = AsyncMock(return_value=None)
    return repository


@pytest.fixture
def project_type_repository():
    repository = Mock()
    repository.find_by_name_fragment = AsyncMock(return_value=None)
    return repository


@pytest.fixture
def cost_item_repository():
    repository = Mock()
    repository.get_by_project_type = AsyncMock(return_value=[])
    return repository


@pytest.fixture
def service(region_repository, project_type_repository, cost_item_repository):
    return CatalogResolutionService(region_repository, project_type_repository, cost_item_repository)


@pytest.mark.asyncio
async def test_region_prefers_caller_location(service, region_repository):
    region_repository.find_match.return_value = SimpleNamespace(
        id=4, name="Towson", zip_code="21204", cost_multiplier=Decimal("1.120")
    )

    region = await service.resolve_region("21204", "Baltimore")

    region_repository.find_match.assert_awaited_once_with("21204")
    assert region.name == "Towson"
    assert region.cost_multiplier == pytest.approx(1.12)


@pytest.mark.asyncio
async def test_region_uses_extracted_location_when_caller_blank(service, region_repository):
    await service.resolve_region("   ", "Annapolis")

    region_repository.find_match.assert_awaited_once_with("Annapolis")


@pytest.mark.asyncio
async def test_region_defaults_to_baltimore_query(service, region_repository):
    await service.resolve_region(None, "")

    region_repository.find_match.assert_awaited_once_with("21093")


@pytest.mark.asyncio
async def test_region_miss_returns_default_region(service):
    region = await service.resolve_region("99999", None)

    assert region.id == 1
    assert region.name == "Baltimore Metro"
    assert region.zip_code == "21093"
    assert region.cost_multiplier == 1.15


@pytest.mark.asyncio
async def test_project_type_prefers_caller_value(service, project_type_repository):
    project_type_repository.find_by_name_fragment.return_value = SimpleNamespace(
        id=3, name="Concrete Polishing", description=None
    )

    project_type = await service.resolve_project_type("polishing", "epoxy")

    project_type_repository.find_by_name_fragment.assert_awaited_once_with("polishing")
    assert project_type.id == 3
    assert project_type.name == "Concrete Polishing"


@pytest.mark.asyncio
async def test_project_type_defaults_to_epoxy_query(service, project_type_repository):
    await service.resolve_project_type(None, None)

    project_type_repository.find_by_name_fragment.assert_awaited_once_with("epoxy flooring")


@pytest.mark.asyncio
async def test_project_type_miss_returns_default(service):
    project_type = await service.resolve_project_type("underwater basket weaving", None)

    assert project_type.id == 1
    assert project_type.name == "Epoxy Flooring"


@pytest.mark.asyncio
async def test_cost_items_are_converted_in_order(service, cost_item_repository):
    cost_item_repository.get_by_project_type.return_value = [
        SimpleNamespace(
            name="Epoxy coating", description="Two coats", unit="sq ft",
            base_cost=Decimal("4.5000"), labor_cost=Decimal("2.0000"),
            material_cost=Decimal("2.0000"), equipment_cost=Decimal("0.5000"),
        ),
        SimpleNamespace(
            name="Mobilization", description=None, unit="each",
            base_cost=Decimal("250.0000"), labor_cost=Decimal("0"),
            material_cost=Decimal("0"), equipment_cost=Decimal("0"),
        ),
    ]

    items = await service.get_cost_items(1)

    cost_item_repository.get_by_project_type.assert_awaited_once_with(1)
    assert [item.name for item in items] == ["Epoxy coating", "Mobilization"]
    assert items[0].base_cost == 4.5
    assert items[1].base_cost == 250.0


@pytest.mark.asyncio
async def test_lookup_errors_propagate(service, region_repository):
    region_repository.find_match.side_effect = DatabaseError("Region lookup failed")

    with pytest.raises(DatabaseError):
        await service.resolve_region("21093", None)
