"""Read-only repositories for the pricing catalog."""

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError
from app.database.models import CostItem, ProjectType, Region
from app.repositories.base_repository import BaseRepository


class RegionRepository(BaseRepository[Region]):
    """Repository for pricing regions."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Region)

    async def find_match(self, term: str) -> Optional[Region]:
        """First region whose zip code equals term or whose name contains it.

        Name matching is case-insensitive and treats LIKE wildcards in term
        literally. When several regions match, the lowest id wins.
        """
        query = (
            select(self.model)
            .where(
                or_(
                    self.model.zip_code == term,
                    self.model.name.icontains(term, autoescape=True),
                )
            )
            .order_by(self.model.id)
            .limit(1)
        )
        try:
            result = await self.session.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Region lookup failed for {term!r}: {e}", exc_info=True)
            raise DatabaseError("Region lookup failed", original_error=e)


class ProjectTypeRepository(BaseRepository[ProjectType]):
    """Repository for project types."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ProjectType)

    async def find_by_name_fragment(self, term: str) -> Optional[ProjectType]:
        """First project type whose name contains term, case-insensitively; lowest id wins."""
        query = (
            select(self.model)
            .where(self.model.name.icontains(term, autoescape=True))
            .order_by(self.model.id)
            .limit(1)
        )
        try:
            result = await self.session.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Project type lookup failed for {term!r}: {e}", exc_info=True)
            raise DatabaseError("Project type lookup failed", original_error=e)


class CostItemRepository(BaseRepository[CostItem]):
    """Repository for cost items."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CostItem)

    async def get_by_project_type(self, project_type_id: int) -> List[CostItem]:
        """All cost items of a project type, ordered by id."""
        query = (
            select(self.model)
            .where(self.model.project_type_id == project_type_id)
            .order_by(self.model.id)
        )
        try:
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Cost item lookup failed for project type {project_type_id}: {e}", exc_info=True
            )
            raise DatabaseError("Cost item lookup failed", original_error=e)
