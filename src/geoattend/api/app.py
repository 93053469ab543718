"""
FastAPI application wiring.

This file creates the `FastAPI` instance and the health probe.
Business logic lives in `geoattend.api.routes` and `geoattend.attendance`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from geoattend import __version__
from geoattend.config.settings import get_settings
from geoattend.core.env import env_flag, env_list
from geoattend.core.logging import configure_logging

from .routes import router

configure_logging(get_settings())

app = FastAPI(title="GeoAttend API", version=__version__)

# CORS (dev-friendly): allow local dashboards to call this API.
# Configure via env:
# - GEOATTEND_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - GEOATTEND_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = env_list("GEOATTEND_CORS_ORIGINS")
cors_allow_local = env_flag("GEOATTEND_CORS_ALLOW_LOCAL", default=True)
cors_origin_regex = os.getenv("GEOATTEND_CORS_ALLOW_ORIGIN_REGEX", "").strip() or (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}
