from __future__ import annotations

import logging
import time
from typing import Callable

from ..errors import SettleTimeout

logger = logging.getLogger(__name__)


def wait_until(
    predicate: Callable[[], bool],
    *,
    what: str,
    timeout: float = 10.0,
    interval: float = 0.5,
) -> None:
    """Poll predicate until it holds or timeout seconds pass.

    Used after asynchronous kernel-side teardown (pool export, recursive
    unmount) before the next dependent operation runs.
    """

    deadline = time.monotonic() + timeout
    attempt = 0
    while True:
        attempt += 1
        if predicate():
            if attempt > 1:
                logger.info("Settled: %s (after %d checks)", what, attempt)
            return
        if time.monotonic() >= deadline:
            raise SettleTimeout(f"Timed out after {timeout:g}s waiting for: {what}")
        logger.debug("Waiting for %s (check %d)", what, attempt)
        time.sleep(interval)
