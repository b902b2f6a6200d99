"""FastAPI server exposing the usage meter on localhost."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from claudemeter import __version__
from claudemeter.api.routes import router
from claudemeter.app import create_meter
from claudemeter.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the meter on startup unless one was injected."""
    meter = getattr(app.state, "meter", None)
    if meter is None:
        meter = create_meter(settings)
        app.state.meter = meter

    try:
        await meter.bootstrap()
    except Exception:
        logger.exception("Meter bootstrap failed")

    yield

    # Shutdown
    await meter.shutdown()


def create_app() -> FastAPI:
    app = FastAPI(
        title="claudemeter",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router, prefix="/api")
    return app


app = create_app()
