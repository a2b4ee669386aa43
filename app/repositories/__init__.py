"""Repository layer modules."""

from app.repositories.catalog_repository import (
    CostItemRepository,
    ProjectTypeRepository,
    RegionRepository,
)
from app.repositories.cost_doc_repository import CostDocRepository

__all__ = [
    "CostDocRepository",
    "CostItemRepository",
    "ProjectTypeRepository",
    "RegionRepository",
]
