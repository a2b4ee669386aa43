"""
Estimation Service

Runs one cost estimation request end to end:
1. Embed the question and retrieve similar corpus documents, concurrently
   with extracting structured project details
2. Resolve region and project type against the catalog
3. Load the project type's cost items
4. Compute the cost breakdown
5. Generate the explanation and the confidence score

Failures of any stage other than extraction abort the request with an
EstimationStageError naming the stage. No partial result is returned.
"""

import asyncio
import time
from typing import Any, Awaitable, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import EstimationStageError, ValidationError
from app.core.gateways import EmbeddingGateway
from app.schemas.estimate import (
    EstimateRequest,
    EstimationResult,
    ExtractedProjectDetails,
    RetrievedDocument,
)
from app.services.base_service import BaseService
from app.services.estimation.catalog_service import CatalogResolutionService
from app.services.estimation.cost_calculator import compute_breakdown
from app.services.estimation.explanation_service import ExplanationSynthesizer, confidence_score
from app.services.estimation.extraction_service import ProjectDetailsExtractor
from app.services.retrieval.vector_retrieval_service import VectorRetrievalService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EstimationService(BaseService):
    """Orchestrates the retrieval-augmented estimation pipeline."""

    def __init__(
        self,
        embedding_gateway: EmbeddingGateway,
        retrieval_service: VectorRetrievalService,
        extractor: ProjectDetailsExtractor,
        catalog_service: CatalogResolutionService,
        explainer: ExplanationSynthesizer,
        top_k: Optional[int] = None,
    ):
        super().__init__()
        self.embedding_gateway = embedding_gateway
        self.retrieval_service = retrieval_service
        self.extractor = extractor
        self.catalog_service = catalog_service
        self.explainer = explainer
        self.top_k = top_k or settings.estimation.retrieval_top_k

    async def estimate(self, request: EstimateRequest) -> EstimationResult:
        """Produce a complete estimate for request.

        Raises:
            ValidationError: If the query is missing or blank
            EstimationStageError: If a pipeline stage fails
        """
        return await self.execute(request)

    def validate(self, request: EstimateRequest):
        if request.query is None or not request.query.strip():
            raise ValidationError("Query is required")

    async def run(self, request: EstimateRequest) -> EstimationResult:
        start = time.perf_counter()
        timings: Dict[str, int] = {}
        LOGGER.info(
            "Starting estimation",
            extra={
                "query": request.query,
                "location": request.location,
                "project_type": request.project_type,
            },
        )

        retrieval_outcome, extraction_outcome = await asyncio.gather(
            self._embed_and_retrieve(request.query, timings),
            self._timed("extraction", timings, self.extractor.extract(request.query, request.project_type)),
            return_exceptions=True,
        )
        for outcome in (retrieval_outcome, extraction_outcome):
            if isinstance(outcome, BaseException):
                raise outcome
        documents: List[RetrievedDocument] = retrieval_outcome
        details: ExtractedProjectDetails = extraction_outcome

        region = await self._stage(
            "region_resolution",
            timings,
            self.catalog_service.resolve_region(request.location, details.location),
        )
        project_type = await self._stage(
            "project_type_resolution",
            timings,
            self.catalog_service.resolve_project_type(request.project_type, details.project_type),
        )
        cost_items = await self._stage(
            "cost_items", timings, self.catalog_service.get_cost_items(project_type.id)
        )

        area = details.area if details.area is not None else settings.estimation.default_area
        calc_start = time.perf_counter()
        try:
            breakdown = compute_breakdown(cost_items, region, area)
        except Exception as e:
            raise EstimationStageError("calculation", str(e), original_error=e) from e
        timings["calculation"] = _elapsed_ms(calc_start)
        LOGGER.info(
            f"Calculated breakdown: total ${breakdown.total_cost:,.2f}",
            extra={"area": area, "lines": [(l.item, l.total_cost) for l in breakdown.lines]},
        )

        explanation = await self._stage(
            "explanation",
            timings,
            self.explainer.explain(breakdown, region, project_type, area, documents),
        )

        result = EstimationResult(
            total_cost=breakdown.total_cost,
            breakdown=breakdown.lines,
            region=region.name,
            project_type=project_type.name,
            explanation=explanation,
            confidence=confidence_score(len(documents)),
            area=area,
            extracted_details=details,
            retrieved_documents=documents,
        )

        timings["total"] = _elapsed_ms(start)
        LOGGER.info(
            f"Estimation completed in {timings['total']}ms",
            extra={"performance": {k: f"{v}ms" for k, v in timings.items()}},
        )
        return result

    async def _embed_and_retrieve(self, query: str, timings: Dict[str, int]) -> List[RetrievedDocument]:
        vector = await self._stage("embedding", timings, self.embedding_gateway.embed(query))
        return await self._stage(
            "retrieval", timings, self.retrieval_service.top_similar(vector, limit=self.top_k)
        )

    async def _stage(self, stage: str, timings: Dict[str, int], awaitable: Awaitable[Any]) -> Any:
        """Await one pipeline stage, recording its duration and tagging failures."""
        start = time.perf_counter()
        try:
            return await awaitable
        except Exception as e:
            LOGGER.error(f"Estimation stage {stage} failed: {e}", exc_info=True)
            raise EstimationStageError(stage, str(e) or type(e).__name__, original_error=e) from e
        finally:
            timings[stage] = _elapsed_ms(start)

    async def _timed(self, stage: str, timings: Dict[str, int], awaitable: Awaitable[Any]) -> Any:
        start = time.perf_counter()
        try:
            return await awaitable
        finally:
            timings[stage] = _elapsed_ms(start)


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)
