from __future__ import annotations

import time
from typing import Callable, Tuple, Type, TypeVar

from shared.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)


def retry(
    fn: Callable[[], T],
    *,
    name: str,
    max_attempts: int = 3,
    initial_sleep_s: float = 0.5,
    max_sleep_s: float = 5.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """Call `fn` until it succeeds, backing off exponentially between attempts.

    Only exceptions listed in `retry_on` are retried; anything else propagates
    immediately. The last failure is re-raised once attempts are exhausted.
    """
    sleep_s = initial_sleep_s
    last_exc: BaseException | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except retry_on as e:
            last_exc = e
            if attempt >= max_attempts:
                break
            log.warning(
                "%s failed; retrying",
                name,
                extra={"attempt": attempt, "max_attempts": max_attempts, "sleep_s": sleep_s, "error": str(e)},
            )
            time.sleep(sleep_s)
            sleep_s = min(max_sleep_s, sleep_s * 1.7)

    assert last_exc is not None
    raise last_exc
