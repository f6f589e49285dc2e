"""Per-client request rate limits.

Moving windows kept in process memory, keyed by client address and a scope
name so each limit counts separately.
"""
import logging
from typing import Optional

from fastapi import Request
from limits import parse, storage, strategies

from truebalance.config import settings
from truebalance.errors import TooManyRequests

logger = logging.getLogger(__name__)

API_LIMIT = parse(settings.api_rate_limit)
LOGIN_LIMIT = parse(settings.login_rate_limit)
REGISTER_LIMIT = parse(settings.register_rate_limit)

# Never counted against the API limit
EXEMPT_PATHS = {"/health"}


class RateLimiter:
    """Moving-window limiter over an in-memory store."""

    def __init__(self, enabled: bool = True):
        self.storage = storage.MemoryStorage()
        self.strategy = strategies.MovingWindowRateLimiter(self.storage)
        self.enabled = enabled

    def hit(self, item, scope: str, client: str, message: Optional[str] = None) -> None:
        """
        Count one request and reject it if the window is already full.

        Raises:
            TooManyRequests: If the client exceeded ``item`` for ``scope``
        """
        if self.enabled and not self.strategy.hit(item, scope, client):
            logger.warning("Rate limit %s exceeded for %s by %s", item, scope, client)
            raise TooManyRequests(message)

    def check(self, item, scope: str, client: str, message: Optional[str] = None) -> None:
        """Like ``hit`` but without counting the request."""
        if self.enabled and not self.strategy.test(item, scope, client):
            logger.warning("Rate limit %s exceeded for %s by %s", item, scope, client)
            raise TooManyRequests(message)

    def record(self, item, scope: str, client: str) -> None:
        """Count a request after the fact; never raises."""
        if self.enabled:
            self.strategy.hit(item, scope, client)

    def reset(self) -> None:
        self.storage.reset()


limiter = RateLimiter(enabled=settings.rate_limit_enabled)


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def limit_api(request: Request):
    if request.url.path in EXEMPT_PATHS:
        return
    limiter.hit(
        API_LIMIT, "api", client_address(request),
        "Too many API requests, please try again later",
    )


def limit_register(request: Request):
    limiter.hit(
        REGISTER_LIMIT, "register", client_address(request),
        "Too many registration attempts, please try again later",
    )


def check_login(request: Request):
    """Reject a client that already used up its failed logins."""
    limiter.check(
        LOGIN_LIMIT, "login", client_address(request),
        "Too many login attempts, please try again later",
    )


def record_failed_login(request: Request) -> None:
    limiter.record(LOGIN_LIMIT, "login", client_address(request))
