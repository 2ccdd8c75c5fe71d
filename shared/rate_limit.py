"""
Pacing between contacts so HubSpot/OpenAI/ClickUp rate limits are respected.
"""

import time
import logging
from typing import Callable

from shared_config import RateLimitConfig

logger = logging.getLogger(__name__)


class Pacer:
    """Called before each contact; the first call never sleeps."""

    def wait(self) -> None:
        raise NotImplementedError

    def record_success(self) -> None:
        pass

    def record_failure(self, is_rate_limit: bool = False) -> None:
        pass


class FixedDelayPacer(Pacer):
    """Sleeps a fixed delay between consecutive units of work."""

    def __init__(self, delay: float, sleep: Callable[[float], None] = time.sleep):
        self.delay = delay
        self.sleep = sleep
        self._started = False

    def wait(self) -> None:
        if not self._started:
            self._started = True
            return
        if self.delay > 0:
            logger.debug(f"⏸️ Pacing: {self.delay:.1f}s")
            self.sleep(self.delay)


class AdaptivePacer(FixedDelayPacer):
    """
    Fixed pacing that reacts to outcomes: a 429 doubles the delay, three
    failures in a row add half again, five successes in a row shave 10% off.
    The delay always stays within [min_delay, max_delay].
    """

    SUCCESS_STREAK = 5
    FAILURE_STREAK = 3

    def __init__(self, base_delay: float, min_delay: float = 0.5, max_delay: float = 10.0,
                 sleep: Callable[[float], None] = time.sleep):
        super().__init__(base_delay, sleep=sleep)
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.successes = 0
        self.failures = 0
        self._success_streak = 0
        self._failure_streak = 0

    def _set_delay(self, delay: float, why: str) -> None:
        self.delay = delay
        logger.debug(f"⏱️ Pacing now {delay:.1f}s ({why})")

    def record_success(self) -> None:
        self.successes += 1
        self._failure_streak = 0
        self._success_streak += 1
        if self._success_streak < self.SUCCESS_STREAK:
            return
        self._success_streak = 0
        self._set_delay(max(self.min_delay, self.delay * 0.9), 'steady success')

    def record_failure(self, is_rate_limit: bool = False) -> None:
        self.failures += 1
        self._success_streak = 0
        self._failure_streak += 1
        if is_rate_limit:
            self._set_delay(min(self.max_delay, self.delay * 2.0), '429')
        elif self._failure_streak >= self.FAILURE_STREAK:
            self._set_delay(min(self.max_delay, max(self.delay, self.delay * 1.5)), 'repeated failures')

    def get_delay(self) -> float:
        return self.delay


def build_pacer(config: RateLimitConfig) -> Pacer:
    if config.pacing_mode == 'adaptive':
        return AdaptivePacer(config.contact_delay)
    return FixedDelayPacer(config.contact_delay)
