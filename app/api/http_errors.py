from fastapi import HTTPException

from app.services.errors import (
    InvalidScoringError,
    RaceLockedError,
    RaceNotConfirmedError,
    RaceResultMissingError,
    RecalculationConflictError,
    ResultSyncError,
    ScoringServiceError,
    UpstreamUnavailableError,
)

STATUS_BY_ERROR = {
    InvalidScoringError: 422,
    RaceResultMissingError: 400,
    RaceNotConfirmedError: 400,
    RaceLockedError: 409,
    RecalculationConflictError: 409,
    UpstreamUnavailableError: 503,
    ResultSyncError: 502,
}


def to_http(exc: ScoringServiceError) -> HTTPException:
    """Un único mensaje legible para la acción que pidió el recálculo."""
    status_code = STATUS_BY_ERROR.get(type(exc), 400)
    headers = {"Retry-After": "5"} if isinstance(exc, RecalculationConflictError) else None
    return HTTPException(status_code=status_code, detail=exc.message, headers=headers)
