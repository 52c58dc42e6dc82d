# order_engine/services/side_effects.py
from typing import Any, Callable

from order_engine.domain.errors import DegradedSideEffect
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


def run_degraded(step: str, fn: Callable[..., Any], *args, **kwargs) -> DegradedSideEffect | None:
    """
    Run a step that must not undo what already happened before it
    (an order that exists, a status that was written). Failures are logged
    and handed back, never raised.
    """
    try:
        fn(*args, **kwargs)
    except Exception as e:
        failure = DegradedSideEffect(step, str(e) or e.__class__.__name__)
        logger.warning(f"Degraded side effect: {failure.message}")
        return failure
    return None
