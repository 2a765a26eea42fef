"""
FastAPI API Server for TradeNest
Mounts the /api routers, renders errors in the response envelope, and owns the
expiry scheduler for the lifetime of the worker.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging
import os
import sys

from config import Config
from database import create_tables, test_connection
from jobs.scheduler import get_expiry_scheduler_instance
from routes import auth, banks, bots, events, payments, trades, transactions, users
from utils.exceptions import PlatformError
from utils.responses import error_response, success_response

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logging.getLogger('apscheduler').setLevel(logging.WARNING)
logging.getLogger('httpx').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: validate configuration, create tables, check the database, start the sweep
    Shutdown: stop the sweep
    """
    logger.info(f"🔧 Worker {os.getpid()} starting...")
    Config.log_environment_config()
    Config.validate_money_configuration()
    Config.validate_production_configuration()

    create_tables()
    database_ready = test_connection()

    scheduler = None
    if Config.EXPIRY_SWEEP_ENABLED and database_ready:
        scheduler = get_expiry_scheduler_instance()
        scheduler.start()
        logger.info(f"✅ Worker {os.getpid()} expiry scheduler started")
    elif not database_ready:
        logger.error("❌ Database unavailable - expiry scheduler not started")
    else:
        logger.info("⏸️ Expiry sweep disabled by configuration")

    yield

    if scheduler is not None:
        scheduler.stop()
    logger.info(f"🔄 Worker {os.getpid()} shutting down...")


app = FastAPI(
    title="TradeNest API",
    description="Trading simulation backend: balances, trades, bot subscriptions and payments",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlatformError)
async def platform_error_handler(request: Request, exc: PlatformError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.message, status_code=exc.status_code, data=exc.data, errors=exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or None,
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return error_response("Validation failed", status_code=400, errors=errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(message, status_code=exc.status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(
        "Internal server error",
        status_code=500,
        error=None if Config.IS_PRODUCTION else str(exc),
    )


for module in (auth, users, banks, payments, transactions, trades, bots, events):
    app.include_router(module.router, prefix=Config.API_PREFIX)


@app.get("/health")
async def health_check():
    """Liveness plus a database round trip"""
    database_ok = test_connection()
    payload = {
        "status": "healthy" if database_ok else "degraded",
        "service": "tradenest-api",
        "environment": Config.CURRENT_ENVIRONMENT,
        "database": "connected" if database_ok else "unavailable",
    }
    if not database_ok:
        return error_response("Database unavailable", status_code=503, data=payload)
    return success_response(payload)


app.add_api_route(f"{Config.API_PREFIX}/health", health_check, methods=["GET"], include_in_schema=False)


@app.get("/")
async def root():
    return success_response(message="TradeNest API is running")
