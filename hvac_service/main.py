import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from . import models_documents  # noqa: F401
from . import models_finance  # noqa: F401
from . import models_worklog  # noqa: F401
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.attendance.router import router as attendance_router
from .domain.clients.router import portal_router as client_portal_router
from .domain.clients.router import router as clients_router
from .domain.contracts.router import public_router as contracts_public_router
from .domain.contracts.router import router as contracts_router
from .domain.documents.router import bast_router, documentation_router
from .domain.documents.router import router as documents_router
from .domain.orders.router import router as orders_router
from .domain.reimbursements.router import router as reimbursements_router
from .domain.technicians.router import router as technicians_router
from .domain.tenants.router import router as tenants_router
from .domain.worklogs.router import public_router as reports_public_router
from .domain.worklogs.router import router as worklogs_router
from .domain.worklogs.router import utility_router as worklogs_utility_router
from .routes.jobs import order_jobs_router
from .routes.jobs import router as jobs_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker process may have created them first
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="HVAC Service API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors to 401 when the issue is the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Routes
app.include_router(tenants_router)
app.include_router(clients_router)
app.include_router(client_portal_router)
app.include_router(technicians_router)
app.include_router(orders_router)
app.include_router(worklogs_router)
app.include_router(worklogs_utility_router)
app.include_router(documents_router)
app.include_router(documentation_router)
app.include_router(bast_router)
app.include_router(contracts_router)
app.include_router(attendance_router)
app.include_router(reimbursements_router)
app.include_router(jobs_router)
app.include_router(order_jobs_router)
app.include_router(contracts_public_router)
app.include_router(reports_public_router)


@app.get("/")
def root():
    return {"message": "HVAC Service API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check job queue (Redis) connectivity for monitoring"""
    try:
        from .redis_client import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()

        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
