"""
Rate limiting middleware for API endpoints
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict
import logging

from app.config import settings

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 3600


class RateLimiter:
    """
    In-memory sliding-window rate limiter, per client IP

    State lives in this process only; each worker counts separately.
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # {client_id: request timestamps within the last hour}
        self.requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_cleanup = 0.0

    def _get_client_id(self, request: Request) -> str:
        """Extract client identifier from request"""
        # X-User-Id is set by the caller, so it cannot be the limiting key
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _prune(timestamps: Deque[float], cutoff: float) -> None:
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

    def _cleanup_old_entries(self, current_time: float) -> None:
        """Drop expired timestamps and forget idle clients, at most once a minute"""
        if current_time - self._last_cleanup < MINUTE:
            return
        self._last_cleanup = current_time

        cutoff_time = current_time - HOUR
        for client_id in list(self.requests.keys()):
            self._prune(self.requests[client_id], cutoff_time)

            # Remove empty entries
            if not self.requests[client_id]:
                del self.requests[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        now = time.time()

        self._cleanup_old_entries(now)

        timestamps = self.requests[client_id]
        self._prune(timestamps, now - HOUR)
        minute_requests = sum(1 for ts in timestamps if ts > now - MINUTE)

        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {self.requests_per_minute} requests per minute",
                    "retry_after": MINUTE
                }
            )

        if len(timestamps) >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {self.requests_per_hour} requests per hour",
                    "retry_after": HOUR
                }
            )

        timestamps.append(now)
        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_requests + 1}, hour: {len(timestamps)})")

    def reset(self) -> None:
        self.requests.clear()
        self._last_cleanup = 0.0


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
