# order_engine/api/errors.py
from fastapi import HTTPException

from order_engine.domain.errors import (
    ConflictError,
    CouponRejected,
    EngineError,
    IntegrationFailure,
    ValidationError,
)
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


def to_http(e: Exception) -> HTTPException:
    """Engine error -> HTTP status. Anything unknown is left to the caller to re-raise."""
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Not found")
    if isinstance(e, CouponRejected):
        return HTTPException(status_code=400, detail={"message": e.message, "reason": getattr(e.reason, "value", e.reason)})
    if isinstance(e, ValidationError):
        detail = {"message": e.message, "group": e.group} if e.group else e.message
        return HTTPException(status_code=400, detail=detail)
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, IntegrationFailure):
        return HTTPException(status_code=502, detail=e.message)
    if isinstance(e, EngineError):
        return HTTPException(status_code=400, detail=e.message)
    logger.error(f"Unmapped error: {e!r}")
    return HTTPException(status_code=500, detail="Internal error")
