"""
FastAPI application factory with New Relic APM, CORS, lifespan, error mapping and all routers.
"""
import logging
import os

# New Relic must be initialized BEFORE any other imports that it instruments.
if os.getenv("NEW_RELIC_LICENSE_KEY"):
    import newrelic.agent
    newrelic.agent.initialize("newrelic.ini")

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.errors import DomainError, StorageError, ValidationError
from app.redis_client import get_redis, close_redis
from app.routers import bookings, payments, reviews

settings = get_settings()
logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s [%s]", settings.app_name, settings.env)
    await get_redis()          # warm up connection pool
    yield
    await close_redis()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Service marketplace: booking lifecycle and payment settlement",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Domain errors -> {"code", "message", "details"}
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if isinstance(exc, StorageError):
        logger.error("Storage error on %s: %s", request.url, exc.message, exc_info=exc.__cause__)
    return JSONResponse(status_code=exc.http_status, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    err = ValidationError("Malformed request", {"errors": exc.errors()})
    return JSONResponse(status_code=err.http_status, content=jsonable_encoder(err.to_dict()))


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage error on %s: %s", request.url, exc, exc_info=True)
    err = StorageError("Storage unavailable, retry later")
    return JSONResponse(status_code=err.http_status, content=err.to_dict())


# Global error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": "internal_error", "message": "Internal server error", "details": {}},
    )


# Health check (no auth)
@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


# Register routers
app.include_router(bookings.router)
app.include_router(payments.router)
app.include_router(reviews.router)
