"""
FastAPI application entry point.
Configures routes, middleware, error handlers and lifecycle events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import init_db, close_db
from app.exceptions import APIError
from app.logging_config import configure_logging
from app.redis import RedisClient
import logging

from app.api.webhooks.cashfree import router as cashfree_router
from app.api.social.swipe import router as swipe_router
from app.api.social.purchase_swipes import router as purchase_swipes_router
from app.api.social.block import router as block_router
from app.api.orders import router as orders_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    # Startup
    configure_logging()
    logging.info(f"Starting up {settings.app_name} ({settings.app_env})...")

    # Production schema is managed by the alembic migrations
    if settings.is_development:
        await init_db()

    # Initialize Redis
    try:
        RedisClient.get_client()
    except Exception as e:
        logging.warning(f"Failed to initialize Redis: {e}")

    yield

    # Shutdown
    await RedisClient.close()
    await close_db()
    logging.info("Shutting down...")


app = FastAPI(
    title="EventMate",
    description="Event bookings, subscriptions and social discovery",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logging.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid data", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logging.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


# CORS middleware
origins = list(settings.cors_origins)
if settings.is_development:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "env": settings.app_env,
    }


# Register webhook routes
app.include_router(
    cashfree_router,
    prefix="/api/cashfree",
    tags=["webhooks"],
)

# Register social routes
app.include_router(
    swipe_router,
    prefix="/api/social",
    tags=["social"],
)
app.include_router(
    purchase_swipes_router,
    prefix="/api/social",
    tags=["social"],
)
app.include_router(
    block_router,
    prefix="/api/social",
    tags=["social"],
)

# Register checkout routes
app.include_router(
    orders_router,
    prefix="/api",
    tags=["orders"],
)
