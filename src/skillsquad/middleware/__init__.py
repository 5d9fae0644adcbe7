"""Middleware registration."""

from fastapi import FastAPI

from skillsquad.config import Settings
from skillsquad.middleware.cors import setup_cors
from skillsquad.middleware.error_handler import setup_error_handlers
from skillsquad.middleware.logging import setup_logging
from skillsquad.middleware.rate_limit import RateLimitMiddleware
from skillsquad.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order. Request ids are bound
    before the rate limiter runs so 429s are logged with one, and CORS is
    added last so browser clients can read every response, including 429s.
    A ``rate_limit_requests`` of 0 turns rate limiting off.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
