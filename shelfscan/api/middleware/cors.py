"""
CORS Configuration

Configures Cross-Origin Resource Sharing settings.
"""

import os
from dataclasses import dataclass, field
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@dataclass
class CORSConfig:
    """CORS configuration settings."""

    allowed_origins: List[str] = field(default_factory=list)
    allow_credentials: bool = False
    allowed_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allowed_headers: List[str] = field(default_factory=lambda: [
        "Accept",
        "Content-Type",
        "X-Request-ID",
    ])
    expose_headers: List[str] = field(default_factory=lambda: ["X-Request-ID"])
    max_age: int = 3600

    # Allow all origins (development only!)
    allow_all_origins: bool = False


# Environment-specific configurations
CORS_CONFIGS = {
    "development": CORSConfig(
        allowed_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        allow_all_origins=True,
    ),
    "test": CORSConfig(allow_all_origins=True),
    "production": CORSConfig(),
}


def get_cors_config(environment: str) -> CORSConfig:
    """
    CORS settings for an environment.

    CORS_ORIGINS (comma-separated) extends the allowed origins.
    """
    base = CORS_CONFIGS.get(environment, CORS_CONFIGS["production"])
    extra = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    return CORSConfig(
        allowed_origins=base.allowed_origins + extra,
        allow_credentials=base.allow_credentials,
        allowed_methods=list(base.allowed_methods),
        allowed_headers=list(base.allowed_headers),
        expose_headers=list(base.expose_headers),
        max_age=base.max_age,
        allow_all_origins=base.allow_all_origins,
    )


def setup_cors(app: FastAPI, config: CORSConfig) -> None:
    """Add the CORS middleware to the application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.allow_all_origins else config.allowed_origins,
        allow_credentials=config.allow_credentials,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
