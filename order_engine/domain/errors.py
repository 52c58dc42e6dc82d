# order_engine/domain/errors.py


class EngineError(Exception):
    """Base for errors raised by the pricing and fulfillment engine."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EngineError):
    """
    Recoverable locally: required group unmet, empty cart, below minimum order,
    coupon constraint violated. Shown to the user, never logged as a fault.
    """

    def __init__(self, message: str, group: str | None = None):
        super().__init__(message)
        self.group = group


class CouponRejected(ValidationError):
    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class ConflictError(EngineError):
    """Usage cap reached at redemption time, insufficient points, status already in flight."""


class IntegrationFailure(EngineError):
    """Store write or print/notify dispatch failed. Callers roll back optimistic state."""


class DegradedSideEffect(EngineError):
    """A post-order step failed after the order itself was created."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
