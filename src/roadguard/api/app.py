# src/roadguard/api/app.py
"""
FastAPI application wiring.

`create_app()` builds the API around the single planning-session engine in
`roadguard.api.routes`; the module-level `app` is what uvicorn serves.

CORS is for a map frontend served from another origin:
- ROADGUARD_CORS_ORIGINS="http://localhost:3000,http://127.0.0.1:3000"
- ROADGUARD_CORS_ALLOW_ORIGIN_REGEX to match origins by pattern instead
- ROADGUARD_CORS_ALLOW_LOCAL=0 turns off the default localhost allowance
"""

from __future__ import annotations

import os
from typing import Any, Mapping

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from roadguard.config.settings import get_settings
from roadguard.core.logging import configure_logging

from .routes import router

LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def cors_options(env: Mapping[str, str] | None = None) -> dict[str, Any] | None:
    """CORS middleware kwargs from the environment, or None when CORS stays off."""
    env = os.environ if env is None else env
    origins = [s.strip() for s in env.get("ROADGUARD_CORS_ORIGINS", "").split(",") if s.strip()]
    regex = env.get("ROADGUARD_CORS_ALLOW_ORIGIN_REGEX", "").strip()
    allow_local = env.get("ROADGUARD_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
    if not regex and not origins and allow_local:
        regex = LOCAL_ORIGIN_REGEX
    if not origins and not regex:
        return None
    # No cookies cross origins.
    return {
        "allow_origins": origins,
        "allow_origin_regex": regex or None,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST", "PUT", "DELETE"],
        "allow_headers": ["*"],
    }


def create_app() -> FastAPI:
    configure_logging()
    application = FastAPI(title=f"{get_settings().app.name} API", version="0.1.0")

    options = cors_options()
    if options is not None:
        application.add_middleware(CORSMiddleware, **options)

    application.include_router(router)

    @application.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return application


app = create_app()
