# src/codebench/ledger/retry.py
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ..errors import InvalidInput, LedgerUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry with exponential backoff for ledger calls.

    Attempt `n` (0-based) that fails is followed by a sleep of
    `min(base_delay_s * 2**n, max_delay_s)`, except after the final attempt.
    Only LedgerUnavailable is retried; every other error propagates at once.
    `max_retries=0` disables retries.
    """

    max_retries: int = 2
    base_delay_s: float = 0.1
    max_delay_s: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise InvalidInput("max_retries must be an int >= 0", data={"value": repr(self.max_retries)})
        if self.base_delay_s < 0 or self.max_delay_s < 0:
            raise InvalidInput(
                "retry delays must be >= 0",
                data={"base_delay_s": self.base_delay_s, "max_delay_s": self.max_delay_s},
            )

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay_s * (2**attempt), self.max_delay_s)

    def call(
        self,
        fn: Callable[[], T],
        *,
        before_attempt: Callable[[int], None] | None = None,
        on_failure: Callable[[int, LedgerUnavailable], None] | None = None,
    ) -> T:
        """Calls `fn` until it succeeds or the retries are exhausted.

        `before_attempt(attempt)` runs before each attempt (cancellation/deadline
        checks raise from there). `on_failure(attempt, error)` runs after each
        failed attempt. The last LedgerUnavailable is re-raised on exhaustion.
        """
        last: LedgerUnavailable | None = None
        for attempt in range(self.max_retries + 1):
            if before_attempt is not None:
                before_attempt(attempt)
            try:
                return fn()
            except LedgerUnavailable as e:
                last = e
                logger.warning("Ledger call failed (attempt %d/%d): %s", attempt + 1, self.max_retries + 1, e)
                if on_failure is not None:
                    on_failure(attempt, e)

            # Exponential backoff (skip on final attempt)
            if attempt < self.max_retries:
                delay = self.delay_for(attempt)
                logger.debug("Retrying in %.2fs...", delay)
                self.sleep(delay)

        if last is None:
            raise InvalidInput("RetryPolicy made no attempts", data={"max_retries": self.max_retries})
        raise last
