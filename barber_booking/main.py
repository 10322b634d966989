# barber_booking/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

from .config import RETENTION_SWEEP_ENABLED, RETENTION_SWEEP_HOURS
from .db import engine
from .errors import SchedulingError
from .routers import (
    appointments_routes,
    auth_routes,
    barbers_routes,
    notifications_routes,
    users_routes,
)
from .services.retention import run_retention_sweeps

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def _retention_loop():
    while True:
        await asyncio.sleep(RETENTION_SWEEP_HOURS * 3600)
        await run_in_threadpool(run_retention_sweeps)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created successfully")

    sweeper = None
    if RETENTION_SWEEP_ENABLED:
        await run_in_threadpool(run_retention_sweeps)
        sweeper = asyncio.create_task(_retention_loop())
        logger.info(f"Retention sweeps scheduled every {RETENTION_SWEEP_HOURS:g}h")

    yield

    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    logger.info("Application shutting down...")


app = FastAPI(title="Barber Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": "unexpected_error"},
    )


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(barbers_routes.router)
app.include_router(appointments_routes.router)
app.include_router(notifications_routes.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
