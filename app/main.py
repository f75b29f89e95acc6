import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.core.exceptions import (
    ReceiptSourceError,
    ResourceNotFoundError,
    PermissionDeniedError,
    ReceiptConflictError,
)
from app.api.v1.router import api_router
from app.db.session import init_db

settings = get_settings()

# Configure logging - suppress noisy third-party loggers
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

# Silence noisy third-party libraries
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("cachecontrol").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("google").setLevel(logging.WARNING)
logging.getLogger("firebase_admin").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting SpendSmart Backend...")
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down SpendSmart Backend...")


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="""
## SpendSmart API

Receipt tracking and spending dashboard API.

### Features
- **Receipts**: Store and list receipts with their line items
- **Dashboard**: Spending summary, category totals, monthly totals and insights

### Authentication
Signed-in users send a Firebase ID token in the Authorization header:
```
Authorization: Bearer <firebase_id_token>
```
Guests (when guest mode is enabled) send no token and identify their
on-device store with an `X-Guest-Id` header instead.
""",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "receipts", "description": "Store and list receipts"},
        {"name": "dashboard", "description": "Spending dashboard and insights"},
        {"name": "health", "description": "Health checks"},
    ],
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(ReceiptSourceError)
async def receipt_source_exception_handler(request: Request, exc: ReceiptSourceError):
    error_type = exc.details.get("error_type", "unknown")
    logger.error(f"ReceiptSourceError: {exc.message} (type={error_type}, details={exc.details})")

    content = {
        "error": "receipt_source_error",
        "message": "Receipt storage temporarily unavailable",
        "details": {"retry_after": 30},
    }

    # Include detailed error info in debug mode
    if settings.DEBUG:
        content["debug"] = {
            "error_type": error_type,
            "message": exc.message,
            "details": exc.details,
        }

    return JSONResponse(status_code=503, content=content)


@app.exception_handler(ResourceNotFoundError)
async def not_found_exception_handler(request: Request, exc: ResourceNotFoundError):
    return JSONResponse(
        status_code=404,
        content={
            "error": "not_found",
            "message": exc.message,
        },
    )


@app.exception_handler(ReceiptConflictError)
async def conflict_exception_handler(request: Request, exc: ReceiptConflictError):
    return JSONResponse(
        status_code=409,
        content={
            "error": "conflict",
            "message": exc.message,
        },
    )


@app.exception_handler(PermissionDeniedError)
async def permission_denied_exception_handler(
    request: Request, exc: PermissionDeniedError
):
    return JSONResponse(
        status_code=403,
        content={
            "error": "permission_denied",
            "message": exc.message,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTPExceptions with consistent format."""
    error_type = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        422: "validation_error",
    }.get(exc.status_code, "http_error")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error_type,
            "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        },
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error occurred")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
        },
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# Root health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME}
