"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillsquad.config import Settings

# Headers sent by the platform's browser SDK on function calls
CLIENT_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-request-id"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS for browser clients calling the matchmaking functions."""
    allow_all = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=CLIENT_HEADERS,
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
