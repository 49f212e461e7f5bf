#  Voice Tutor - Rate Limit Dependency
#
#  Route-level gate in front of the shared RateLimiter.
#  Usage: @router.post(..., dependencies=[Depends(RateLimit(OperationClass.AUTH))])
#
#  Depends on: container.py, services/rate_limiter.py, logging_config.py
#  Used by:    routes/*

import logging

from dependency_injector.wiring import inject, Provide
from fastapi import Depends
from starlette.requests import Request

from backend.container import Container
from backend.exceptions import RateLimitExceededError
from backend.logging_config import set_client_key
from backend.models.enums import OperationClass
from backend.services.rate_limiter import RateLimiter

logger = logging.getLogger("tutor.rate_limit")

UNKNOWN_CLIENT = "unknown"


def client_key(request: Request) -> str:
    """Best-effort client address used to bucket counters.

    First hop of X-Forwarded-For, then CF-Connecting-IP, then X-Real-IP.
    Clients with none of these share the "unknown" bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return (
        request.headers.get("cf-connecting-ip")
        or request.headers.get("x-real-ip")
        or UNKNOWN_CLIENT
    )


@inject
async def get_rate_limiter(
    limiter: RateLimiter = Depends(Provide[Container.rate_limiter]),
) -> RateLimiter:
    return limiter


class RateLimit:
    """FastAPI dependency admitting one request for an operation class."""

    def __init__(self, operation_class: OperationClass = OperationClass.DEFAULT):
        self.operation_class = OperationClass(operation_class)

    async def __call__(
        self,
        request: Request,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        key = client_key(request)
        set_client_key(key)
        decision = limiter.admit(key, self.operation_class)
        if not decision.allowed:
            logger.warning(
                "Throttled %s on %s (retry in %ds)",
                key, self.operation_class.value, decision.retry_after_seconds,
            )
            raise RateLimitExceededError(
                operation_class=self.operation_class.value,
                limit=decision.limit,
                retry_after=decision.retry_after_seconds,
            )
