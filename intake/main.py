# intake/main.py
"""
FastAPI application entry point.
Includes timing middleware, error handlers, the photo mount, and all routers.
"""

import os
import time

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from intake.config import settings
from intake.database import create_tables
from intake.exceptions import IntakeError
from intake.routers import auth, clients, events, health, reports, service_orders, service_requests, users, vehicles
from intake.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Vehicle Intake API",
    description="Clients, vehicles, check-in / check-out evidence, and service-order mirroring.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message} {exc.details}")
    else:
        logger.warning(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.details})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(auth.router,             prefix="/api/v1", tags=["Auth"])
app.include_router(users.router,            prefix="/api/v1", tags=["Users"])
app.include_router(clients.router,          prefix="/api/v1", tags=["Clients"])
app.include_router(vehicles.router,         prefix="/api/v1", tags=["Vehicles"])
app.include_router(service_orders.router,   prefix="/api/v1", tags=["Service Orders"])
app.include_router(service_requests.router, prefix="/api/v1", tags=["Service Requests"])
app.include_router(reports.router,          prefix="/api/v1", tags=["Reports"])
app.include_router(events.router,           prefix="/api/v1", tags=["Live Updates"])
app.include_router(health.router,           prefix="/api/v1", tags=["Health"])

# ── Photo bucket ─────────────────────────────────────────────────────────────
os.makedirs(settings.PHOTO_STORAGE_DIR, exist_ok=True)
app.mount(settings.PHOTO_PUBLIC_BASE_URL, StaticFiles(directory=settings.PHOTO_STORAGE_DIR), name="photos")


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Vehicle Intake starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    if settings.service_orders_enabled:
        logger.info(f"🔗 Service orders: {settings.SERVICE_ORDER_URL} ({settings.SERVICE_ORDER_STATUS_VARIANT})")
    else:
        logger.info("🔗 Service orders: not configured")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Vehicle Intake shutting down...")
