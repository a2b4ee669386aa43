"""
Vector Retrieval Service

Ranks corpus documents by cosine similarity to a query embedding. Only
documents that already carry an embedding are eligible.
"""

from typing import List, Optional

from app.core.exceptions import ValidationError
from app.repositories.cost_doc_repository import CostDocRepository
from app.schemas.estimate import RetrievedDocument
from app.services.base_service import BaseService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TOP_K = 5


class VectorRetrievalService(BaseService):
    """Nearest-neighbour search over the cost corpus."""

    def __init__(self, repository: CostDocRepository, default_limit: int = DEFAULT_TOP_K):
        super().__init__(repository)
        self.default_limit = default_limit

    async def top_similar(
        self,
        query_vector: List[float],
        limit: Optional[int] = None,
    ) -> List[RetrievedDocument]:
        """Return up to ``limit`` documents, most similar first.

        Similarity is ``1 - cosine_distance``. Equal similarities are ordered
        by ascending document id.

        Raises:
            ValidationError: If the vector is empty or limit is below 1
            DatabaseError: If the vector search fails
        """
        return await self.execute(query_vector, limit if limit is not None else self.default_limit)

    def validate(self, query_vector: List[float], limit: int):
        if not query_vector:
            raise ValidationError("Query vector must not be empty")
        if limit < 1:
            raise ValidationError(f"Retrieval limit must be at least 1, got {limit}")

    async def run(self, query_vector: List[float], limit: int) -> List[RetrievedDocument]:
        rows = await self.repository.find_similar(query_vector, limit=limit)
        if not rows:
            LOGGER.info("No embedded documents available for retrieval")
            return []

        documents = [
            RetrievedDocument(
                id=doc.id,
                title=doc.title,
                content=doc.content,
                source=doc.source,
                doc_type=doc.doc_type,
                metadata=doc.doc_metadata or {},
                similarity=1.0 - distance,
            )
            for doc, distance in rows
        ]
        documents.sort(key=lambda d: (-d.similarity, d.id))

        LOGGER.info(
            f"Retrieved {len(documents)} documents",
            extra={
                "count": len(documents),
                "best_similarity": documents[0].similarity,
                "titles": [d.title for d in documents],
            },
        )
        return documents
