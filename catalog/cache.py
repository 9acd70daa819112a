"""Single-entry TTL cache for the normalized product list."""
import time
from typing import Callable, List, Optional

from catalog.logging import get_logger
from catalog.models import Product

logger = get_logger(__name__)


class ProductCache:
    """Holds the last product list read from the store and when it was fetched.

    There is no lock: concurrent writers may invalidate while a reader fills,
    in which case the reader's (older) list wins until the next write or expiry.
    """

    def __init__(self, ttl_ms: int = 120000, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_ms: Freshness window in milliseconds
            clock: Seconds-returning clock, injectable for tests
        """
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._value: Optional[List[Product]] = None
        self._fetched_at = 0.0

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def read(self) -> Optional[List[Product]]:
        """Return the cached list while fresh, else None."""
        if self._value is None:
            return None
        if self._now_ms() - self._fetched_at < self.ttl_ms:
            return list(self._value)
        logger.debug("Product cache expired")
        return None

    def fill(self, value: List[Product]) -> None:
        self._value = list(value)
        self._fetched_at = self._now_ms()

    def invalidate(self) -> None:
        self._value = None
        self._fetched_at = 0.0
        logger.info("🔄 Product cache cleared")

    @property
    def is_active(self) -> bool:
        return self.read() is not None

    def age_ms(self) -> Optional[float]:
        if self._value is None:
            return None
        return self._now_ms() - self._fetched_at
