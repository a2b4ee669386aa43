"""Cost estimation API endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session as get_session
from app.core.gateways import create_embedding_gateway, create_generation_gateway
from app.repositories.catalog_repository import (
    CostItemRepository,
    ProjectTypeRepository,
    RegionRepository,
)
from app.repositories.cost_doc_repository import CostDocRepository
from app.schemas.estimate import ErrorResponse, EstimateRequest, EstimateResponse
from app.services.estimation.catalog_service import CatalogResolutionService
from app.services.estimation.estimation_service import EstimationService
from app.services.estimation.explanation_service import ExplanationSynthesizer
from app.services.estimation.extraction_service import ProjectDetailsExtractor
from app.services.retrieval.vector_retrieval_service import VectorRetrievalService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_estimation_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> EstimationService:
    generation_gateway = create_generation_gateway()
    return EstimationService(
        embedding_gateway=create_embedding_gateway(),
        retrieval_service=VectorRetrievalService(CostDocRepository(db_session)),
        extractor=ProjectDetailsExtractor(generation_gateway),
        catalog_service=CatalogResolutionService(
            RegionRepository(db_session),
            ProjectTypeRepository(db_session),
            CostItemRepository(db_session),
        ),
        explainer=ExplanationSynthesizer(generation_gateway),
    )


@router.post(
    "/estimate",
    response_model=EstimateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Estimate construction cost",
    operation_id="create_cost_estimate",
)
async def create_estimate(
    request: EstimateRequest,
    estimation_service: Annotated[EstimationService, Depends(get_estimation_service)],
) -> EstimateResponse:
    """
    Estimate the cost of a construction project from a natural-language question.

    Optional ``location`` and ``projectType`` override what is extracted from
    the question. Errors are returned as ``{error, details}`` by the
    application's exception handlers.
    """
    LOGGER.info(
        "Estimate request received",
        extra={"query": request.query, "location": request.location, "project_type": request.project_type},
    )
    result = await estimation_service.estimate(request)
    return EstimateResponse.from_result(result)
