from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError
from app.database.models import CostDoc
from app.repositories.base_repository import BaseRepository


class CostDocRepository(BaseRepository[CostDoc]):
    """Repository for the cost corpus and its pgvector embeddings."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with the CostDoc model."""
        super().__init__(session, CostDoc)

    async def find_similar(
        self,
        embedding: List[float],
        limit: int = 5,
    ) -> List[Tuple[CostDoc, float]]:
        """Nearest documents by cosine distance.

        Only documents with an embedding are eligible. Rows are ordered by
        distance, then by id so equal distances come back in a stable order.

        Args:
            embedding: Query embedding vector
            limit: Maximum number of rows

        Returns:
            List of (document, cosine distance) tuples
        """
        distance_expr = self.model.embedding.cosine_distance(embedding)
        query = (
            select(self.model, distance_expr.label("distance"))
            .where(self.model.embedding.is_not(None))
            .order_by(distance_expr, self.model.id)
            .limit(limit)
        )
        try:
            result = await self.session.execute(query)
            return [(row.CostDoc, float(row.distance)) for row in result]
        except SQLAlchemyError as e:
            self.logger.error(f"Vector search failed: {e}", exc_info=True)
            raise DatabaseError("Vector search failed", original_error=e)

    async def get_missing_embeddings(
        self,
        source_prefix: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[CostDoc]:
        """Documents that still have no embedding, ordered by id.

        Args:
            source_prefix: Only include documents whose source starts with this prefix
            limit: Optional cap on the number of documents
        """
        query = select(self.model).where(self.model.embedding.is_(None))
        if source_prefix:
            query = query.where(self.model.source.startswith(source_prefix, autoescape=True))
        query = query.order_by(self.model.id)
        if limit:
            query = query.limit(limit)

        try:
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to list documents without embeddings: {e}", exc_info=True)
            raise DatabaseError("Failed to list documents without embeddings", original_error=e)

    async def update_embedding(self, doc_id: int, embedding: List[float]) -> bool:
        """Attach an embedding to a document.

        The caller owns the transaction and commits.

        Returns:
            True if a row was updated
        """
        query = (
            update(self.model)
            .where(self.model.id == doc_id)
            .values(embedding=embedding, updated_at=datetime.now(timezone.utc))
        )
        try:
            result = await self.session.execute(query)
            await self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to store embedding for document {doc_id}: {e}", exc_info=True)
            raise DatabaseError(f"Failed to store embedding for document {doc_id}", original_error=e)

    async def get_embedding_statistics(self, source_prefix: Optional[str] = None) -> dict:
        """Count documents and how many of them are embedded."""
        query = select(
            func.count(self.model.id),
            func.count(self.model.embedding),
        )
        if source_prefix:
            query = query.where(self.model.source.startswith(source_prefix, autoescape=True))

        try:
            result = await self.session.execute(query)
            total, with_embeddings = result.one()
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to compute embedding statistics: {e}", exc_info=True)
            raise DatabaseError("Failed to compute embedding statistics", original_error=e)

        return {
            "total_documents": total,
            "with_embeddings": with_embeddings,
        }
