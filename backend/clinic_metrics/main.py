# clinic metrics api
# fastapi app with async mongodb record store, report builders, dashboard summary and note scoring

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_metrics.config import settings
from clinic_metrics.errors import ReportingError
from clinic_metrics.services.db import db
from clinic_metrics.routers import reports, dashboard, notes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """open the record store (and its indexes) for the app lifetime"""
    logger.info(f"Starting reporting engine (session rate {settings.SESSION_RATE})")
    await db.connect()
    if settings.CREATE_INDEXES_ON_STARTUP:
        await db.create_indexes()
    logger.info("Reporting engine ready")
    yield
    logger.info("Stopping reporting engine")
    await db.close()


app = FastAPI(
    title="Clinic Metrics API",
    description="Reporting engine for the practice: session/client/therapist/authorization/billing reports, "
                "monthly dashboard summary and session note compliance scoring",
    version="0.1.0",
    lifespan=lifespan,
)

# the reports dashboard is served from FRONTEND_URL
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReportingError)
async def reporting_error_handler(request: Request, exc: ReportingError) -> JSONResponse:
    """render engine errors as {success: false, error} with the error's status code"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


# register routers
app.include_router(reports.router)
app.include_router(dashboard.router)
app.include_router(notes.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "clinic-metrics-api"}
