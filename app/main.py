from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.sensors import router as sensors_router
from logging_config import configure_logging
from services.data import build_default_data_service


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_data_service()
    try:
        yield
    finally:
        service.shutdown()
        build_default_data_service.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Particulate Matter API",
        description="Read API for particulate matter measurements of a sensor fleet.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(sensors_router)
    app.include_router(router)
    return app


app = create_app()
