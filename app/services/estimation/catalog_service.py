"""Resolution of free-text region and project-type strings to catalog rows."""

from typing import List, Optional

from app.core.config import settings
from app.repositories.catalog_repository import (
    CostItemRepository,
    ProjectTypeRepository,
    RegionRepository,
)
from app.schemas.catalog import CostItemRecord, ProjectTypeRecord, RegionRecord
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def default_region() -> RegionRecord:
    """Region used when nothing in the catalog matches."""
    return RegionRecord(
        id=1,
        name=settings.estimation.default_region_name,
        zip_code=settings.estimation.default_region_query,
        cost_multiplier=settings.estimation.default_region_multiplier,
    )


def default_project_type() -> ProjectTypeRecord:
    """Project type used when nothing in the catalog matches."""
    return ProjectTypeRecord(id=1, name=settings.estimation.default_project_type_name)


def _first_present(*values: Optional[str]) -> Optional[str]:
    """First value that is not None and not blank, stripped."""
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None


class CatalogResolutionService:
    """Maps user and model supplied strings to regions, project types and cost items.

    A miss is never an error: the fixed default record is returned and the
    miss is logged.
    """

    def __init__(
        self,
        region_repository: RegionRepository,
        project_type_repository: ProjectTypeRepository,
        cost_item_repository: CostItemRepository,
    ):
        self.region_repository = region_repository
        self.project_type_repository = project_type_repository
        self.cost_item_repository = cost_item_repository

    async def resolve_region(
        self,
        caller_location: Optional[str] = None,
        extracted_location: Optional[str] = None,
    ) -> RegionRecord:
        """Resolve the pricing region.

        The caller's location wins over the extracted one; with neither, the
        default region query is used. A zip code match or a case-insensitive
        name containment both count, and the lowest id wins.
        """
        term = _first_present(
            caller_location, extracted_location, settings.estimation.default_region_query
        )
        region = await self.region_repository.find_match(term)
        if region is None:
            fallback = default_region()
            LOGGER.info(f"No region matches {term!r}, using default region {fallback.name}")
            return fallback

        record = RegionRecord.model_validate(region)
        LOGGER.info(
            f"Resolved region {record.name} for {term!r}",
            extra={"region_id": record.id, "cost_multiplier": record.cost_multiplier},
        )
        return record

    async def resolve_project_type(
        self,
        caller_project_type: Optional[str] = None,
        extracted_project_type: Optional[str] = None,
    ) -> ProjectTypeRecord:
        """Resolve the project type by case-insensitive name containment."""
        term = _first_present(
            caller_project_type, extracted_project_type, settings.estimation.default_project_type
        )
        project_type = await self.project_type_repository.find_by_name_fragment(term)
        if project_type is None:
            fallback = default_project_type()
            LOGGER.info(f"No project type matches {term!r}, using default {fallback.name}")
            return fallback

        record = ProjectTypeRecord.model_validate(project_type)
        LOGGER.info(f"Resolved project type {record.name} for {term!r}", extra={"project_type_id": record.id})
        return record

    async def get_cost_items(self, project_type_id: int) -> List[CostItemRecord]:
        """Cost items of a project type in id order."""
        items = await self.cost_item_repository.get_by_project_type(project_type_id)
        records = [CostItemRecord.model_validate(item) for item in items]
        LOGGER.info(
            f"Retrieved {len(records)} cost items for project type {project_type_id}",
            extra={"items": [(r.name, r.unit, r.base_cost) for r in records]},
        )
        return records
