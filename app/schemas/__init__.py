from .catalog import CostItemRecord, ProjectTypeRecord, RegionRecord, UnitKind
from .estimate import (
    BreakdownLine,
    CostBreakdown,
    ErrorResponse,
    EstimateRequest,
    EstimateResponse,
    EstimationResult,
    ExtractedProjectDetails,
    RetrievedDocument,
)
from .health import HealthResponse, RootResponse, ServiceHealth

__all__ = [
    "BreakdownLine",
    "CostBreakdown",
    "CostItemRecord",
    "ErrorResponse",
    "EstimateRequest",
    "EstimateResponse",
    "EstimationResult",
    "ExtractedProjectDetails",
    "HealthResponse",
    "ProjectTypeRecord",
    "RegionRecord",
    "RetrievedDocument",
    "RootResponse",
    "ServiceHealth",
    "UnitKind",
]
