"""Common API dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.config import settings
from clinic_inbox.core.exceptions import BadRequestError, NotFoundError
from clinic_inbox.core.rate_limit import RateLimitConfig, SlidingWindowRateLimiter
from clinic_inbox.db.repositories import ClinicRepository
from clinic_inbox.db.session import get_db
from clinic_inbox.models import Clinic


async def get_redis() -> AsyncGenerator[Redis, None]:
    """Dependency for getting async Redis client."""
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        yield redis
    finally:
        await redis.aclose()


async def get_current_clinic(
    x_clinic_id: Annotated[str, Header()],
    db: AsyncSession = Depends(get_db),
) -> Clinic:
    """Resolve the tenant from the X-Clinic-Id header."""
    try:
        clinic_id = UUID(x_clinic_id)
    except ValueError:
        raise BadRequestError("X-Clinic-Id must be a UUID")

    clinic = await ClinicRepository(db).get(clinic_id)
    if not clinic:
        raise NotFoundError("Clinic", x_clinic_id)
    return clinic


def get_webhook_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    """The process-wide webhook limiter, created on first use if startup did not."""
    limiter = getattr(request.app.state, "webhook_rate_limiter", None)
    if limiter is None:
        limiter = SlidingWindowRateLimiter(
            RateLimitConfig(
                window_ms=settings.WEBHOOK_RATE_LIMIT_WINDOW_MS,
                max_requests=settings.WEBHOOK_RATE_LIMIT_MAX_REQUESTS,
            )
        )
        request.app.state.webhook_rate_limiter = limiter
    return limiter


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


# Type aliases for cleaner annotations
DbSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[Redis, Depends(get_redis)]
CurrentClinic = Annotated[Clinic, Depends(get_current_clinic)]
WebhookRateLimiter = Annotated[SlidingWindowRateLimiter, Depends(get_webhook_rate_limiter)]
