"""
Rate Limiter - Control chat request frequency per user.

Every chat request may fan out into several model and embedding calls,
so /chat is limited per authenticated user with a sliding window.

The limiter is in-memory; each process keeps its own window.
"""
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Dict, Optional, Tuple
import threading

from busy_assistant.core.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding window rate limiter.

    Example:
        >>> limiter = RateLimiter(requests_per_minute=30)
        >>> limiter.is_allowed("user-123")
        (True, 29)
    """

    def __init__(
        self,
        requests_per_minute: int = 30,
        window: timedelta = timedelta(minutes=1)
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_minute: Maximum requests allowed per window
            window: Length of the sliding window
        """
        self.limit = requests_per_minute
        self.window = window

        self._requests: Dict[str, Deque[datetime]] = {}
        self._lock = threading.Lock()

        logger.info(f"RateLimiter initialized: {requests_per_minute} requests/minute")

    def is_allowed(self, identifier: str, now: Optional[datetime] = None) -> Tuple[bool, int]:
        """
        Check if a request is allowed and record it when it is.

        Args:
            identifier: User ID
            now: Current time (injectable for tests)

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        now = now or datetime.utcnow()
        with self._lock:
            recent = self._prune(identifier, now)

            if len(recent) >= self.limit:
                logger.warning(f"Rate limit exceeded for user: {identifier[:8]}...")
                return False, 0

            recent.append(now)
            self._requests[identifier] = recent
            return True, self.limit - len(recent)

    def get_reset_time(self, identifier: str, now: Optional[datetime] = None) -> datetime:
        """
        Get when the oldest counted request leaves the window.

        Args:
            identifier: User ID

        Returns:
            Datetime when the limit next frees a slot
        """
        now = now or datetime.utcnow()
        with self._lock:
            recent = self._prune(identifier, now)
            if not recent:
                return now
            return recent[0] + self.window

    def _prune(self, identifier: str, now: datetime) -> Deque[datetime]:
        """Drop requests older than the window; idle users lose their entry."""
        cutoff = now - self.window
        recent = self._requests.get(identifier)
        if recent is None:
            return deque()
        while recent and recent[0] <= cutoff:
            recent.popleft()
        if not recent:
            del self._requests[identifier]
        return recent


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the global rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        from busy_assistant.core.config import get_settings
        _rate_limiter = RateLimiter(
            requests_per_minute=get_settings().rate_limit_per_minute
        )
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the global limiter (used by tests)."""
    global _rate_limiter
    _rate_limiter = None
