"""Core module for exceptions, phone handling, rate limiting and telemetry."""

from clinic_inbox.core.exceptions import (
    BadRequestError,
    GreenApiError,
    NotFoundError,
    ProviderNotConfiguredError,
)
from clinic_inbox.core.phone import normalize_phone, phone_suffix, to_chat_id
from clinic_inbox.core.rate_limit import RateLimitConfig, SlidingWindowRateLimiter
from clinic_inbox.core.telemetry import get_tracer, setup_all_instrumentation, setup_telemetry

__all__ = [
    "BadRequestError",
    "GreenApiError",
    "NotFoundError",
    "ProviderNotConfiguredError",
    "normalize_phone",
    "phone_suffix",
    "to_chat_id",
    "RateLimitConfig",
    "SlidingWindowRateLimiter",
    "get_tracer",
    "setup_telemetry",
    "setup_all_instrumentation",
]
