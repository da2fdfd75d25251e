# backend/app/services/best_effort.py
"""
Fire-and-log helper for side effects that must never fail the caller.

Emails, audit rows and meeting provisioning run through ``run_best_effort``.
Failures (including timeouts) are logged at warning level, counted in
Prometheus, and reported back as ``None``.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
import logging
from typing import Callable, Optional, TypeVar

from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Bounded pool so slow providers cannot pile up unbounded threads.
_SIDE_EFFECT_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="side-effect")


def run_best_effort(
    label: str,
    fn: Callable[[], T],
    *,
    timeout: Optional[float] = None,
) -> Optional[T]:
    """Run ``fn``; return its result, or ``None`` if it raised or timed out."""
    try:
        if timeout is None:
            return fn()
        future = _SIDE_EFFECT_EXECUTOR.submit(fn)
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        logger.warning("[BEST-EFFORT] %s timed out after %.1fs", label, timeout)
    except Exception as exc:
        logger.warning("[BEST-EFFORT] %s failed: %s", label, exc, exc_info=True)
    prometheus_metrics.inc_side_effect_failure(label)
    return None
