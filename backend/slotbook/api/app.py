"""
FastAPI application entry point with health check route.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from slotbook.api.routes import bookings, providers
from slotbook.api.middleware.error_handler import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from slotbook.lib.logging import get_logger, log_with_context, set_correlation_id
from slotbook.lib.settings import settings

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Route handlers read it from request state, log records from the context var
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={"extra_fields": {
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }},
        )

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id

            log_with_context(logger, "info", "Response sent", status_code=response.status_code)
            return response
        finally:
            set_correlation_id(None)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup/shutdown events.
    """
    logger.info(f"{settings.app_name} starting up...")
    yield
    logger.info(f"{settings.app_name} shutting down...")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Service appointment booking: availability, bookings, and reviews",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Correlation ID middleware
app.add_middleware(CorrelationIdMiddleware)


# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# Include routers
app.include_router(providers.router)
app.include_router(bookings.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
