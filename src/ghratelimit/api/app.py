# src/ghratelimit/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance for the read-only throttle status API.
Endpoints live in `ghratelimit.api.routes`.
"""

from __future__ import annotations

from fastapi import FastAPI

from ghratelimit.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="ghratelimit API", version="0.1.0")
app.include_router(router)
