"""Custom exception hierarchy."""

class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ValidationError(AppError):
    """Raised when input validation fails (e.g. an empty estimation query)."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class UpstreamUnavailableError(APIClientError):
    """Raised when an upstream model service cannot be reached or answers non-2xx."""
    pass


class UpstreamTimeoutError(UpstreamUnavailableError):
    """Raised when an upstream model service call times out."""
    pass


class InvalidUpstreamResponseError(APIClientError):
    """Raised when an upstream model service returns a malformed payload."""
    pass


class PipelineError(AppError):
    """Base exception for pipeline errors."""
    pass


class EstimationStageError(PipelineError):
    """A stage of the estimation pipeline failed.

    Carries the stage name so the caller can report where the request broke.
    """
    def __init__(self, stage: str, message: str, original_error: Exception = None):
        super().__init__(f"{stage} failed: {message}", original_error=original_error)
        self.stage = stage


class BackfillAbortedError(PipelineError):
    """The embedding backfill could not start; the run is aborted."""
    pass
