from fundbridge.core.config import get_settings
from fundbridge.core.logging import configure_logging
from fundbridge.core.middleware import RequestIdMiddleware
from fundbridge.core.middleware_rate_limit import SubmissionRateLimitMiddleware
from fundbridge.core.rate_limit import InMemoryRateLimiter
from fundbridge.api.v1.router import v1_router

from fastapi import FastAPI


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # Submission endpoints fan out to RPC reads
    limiter = InMemoryRateLimiter(
        capacity=settings.submission_rate_capacity,
        refill_per_sec=settings.submission_rate_refill_per_sec,
    )
    app.add_middleware(
        SubmissionRateLimitMiddleware,
        limiter=limiter,
        paths=[
            f"{settings.api_prefix}/contributions",
            f"{settings.api_prefix}/contributions/reverify",
        ],
    )

    # Outermost: request id
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
