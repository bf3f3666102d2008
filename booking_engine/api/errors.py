"""Map engine failures onto HTTP errors for the staff API"""

from fastapi import HTTPException, status

from booking_engine.errors import EngineError, INTERNAL_ERROR
from booking_engine.schemas.common import EngineResult

NOT_FOUND_CODES = {"NOT_FOUND", "RESTAURANT_NOT_FOUND"}
CONFLICT_CODES = {"ALREADY_RESOLVED", "INVALID_STATUS", "INVALID_TRANSITION"}


def _status_code(code: str, tier: str) -> int:
    if code in NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    if tier == "conflict" or code in CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    if code == INTERNAL_ERROR:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_422_UNPROCESSABLE_ENTITY


def http_error(exc: EngineError) -> HTTPException:
    return HTTPException(
        status_code=_status_code(exc.code, exc.status),
        detail={"error_code": exc.code, "message": exc.message},
    )


def raise_for_result(result: EngineResult) -> EngineResult:
    """Pass successful results through; raise for error and conflict results"""
    if result.error_code is None:
        return result
    raise HTTPException(
        status_code=_status_code(result.error_code, result.status),
        detail={"error_code": result.error_code, "message": result.message},
    )
