from typing import Optional

from fastapi.responses import JSONResponse

from app.schemas.estimate import ErrorResponse


def create_error_response(
    error: str,
    status_code: int,
    details: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized ``{error, details}`` JSON error response.

    Only messages go into the payload, never tracebacks.
    """
    payload = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=payload.model_dump())
