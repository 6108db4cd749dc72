"""Rate limiting for the portal API.

API-wide limits use slowapi. The resume-link throttle is an injected
collaborator over the ``limits`` library; both share Redis storage when
REDIS_URL is reachable.
"""

import logging

from limits import parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from probatedesk.core.config import settings

logger = logging.getLogger(__name__)

IS_TESTING = settings.ENV == "test"
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)


def _storage_uri() -> str:
    """Redis when configured and reachable, otherwise process memory."""
    if IS_TESTING or not settings.REDIS_URL:
        return "memory://"
    try:
        import redis

        r = redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        r.ping()
        return settings.REDIS_URL
    except Exception as e:
        logger.warning("Redis unavailable for rate limiting, using in-memory: %s", e)
        return "memory://"


STORAGE_URI = _storage_uri()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
)


class ResumeLinkThrottle:
    """Moving-window throttle for resume-link emails, keyed by address."""

    def __init__(self, requests_per_hour: int, storage_uri: str = "memory://"):
        self.item = parse(f"{requests_per_hour}/hour")
        self.strategy = MovingWindowRateLimiter(storage_from_string(storage_uri))

    def hit(self, email: str) -> bool:
        """Record an attempt; False when the address is over its window."""
        return self.strategy.hit(self.item, "resume-link", email.strip().lower())

    def reset(self) -> None:
        self.strategy.storage.reset()


_resume_link_throttle = ResumeLinkThrottle(
    settings.RESUME_LINK_REQUESTS_PER_HOUR, STORAGE_URI
)


def get_resume_link_throttle() -> ResumeLinkThrottle:
    """Dependency returning the process-wide resume-link throttle."""
    return _resume_link_throttle
