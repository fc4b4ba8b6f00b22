"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_inbox.config import settings
from clinic_inbox.core.rate_limit import RateLimitConfig, SlidingWindowRateLimiter


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    from clinic_inbox.db.session import close_db, init_db

    await init_db()

    # Setup telemetry
    from clinic_inbox.core.telemetry import setup_all_instrumentation

    setup_all_instrumentation(app)

    app.state.webhook_rate_limiter = SlidingWindowRateLimiter(
        RateLimitConfig(
            window_ms=settings.WEBHOOK_RATE_LIMIT_WINDOW_MS,
            max_requests=settings.WEBHOOK_RATE_LIMIT_MAX_REQUESTS,
        )
    )

    yield

    # Shutdown
    app.state.webhook_rate_limiter.reset()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Clinic Inbox API",
        description="WhatsApp conversation inbox for clinics",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from clinic_inbox.api.v1.router import api_router

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
