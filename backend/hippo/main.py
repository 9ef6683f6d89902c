"""Main FastAPI application."""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager

from hippo.config import get_settings
from hippo.exceptions import HippoError, TransientStoreError
from hippo.middleware.logging import LoggingMiddleware, get_logger
from hippo.api import conversations, loans, health
from hippo.database import engine, Base
import hippo.models  # noqa: F401  registers tables on Base.metadata

settings = get_settings()
logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    Base.metadata.create_all(bind=engine)
    logger.info("database_tables_ready", url=engine.url.render_as_string(hide_password=True))

    yield  # App runs here

    engine.dispose()
    logger.info("shutting_down", service=settings.app_name)


async def hippo_error_handler(request: Request, exc: HippoError) -> JSONResponse:
    """Render domain errors as {"error": kind, "detail": message}."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_error",
        kind=exc.kind,
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Store failures that escape the registries, e.g. an expired row reloading
    while the response is serialized, get the same body as any other outage.
    """
    logger.error(
        "store_unavailable",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path
    )
    error = TransientStoreError("Store unavailable while handling the request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed request fields are validation failures too."""
    errors = jsonable_encoder(exc.errors())
    logger.warning("request_invalid", path=request.url.path, error_count=len(errors))
    return JSONResponse(
        status_code=422,
        content={"error": "validation_failure", "detail": "Request validation failed", "fields": errors}
    )


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Conversations, messaging and loan tracking for peer-to-peer lending",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-ID"]
)

# Logging middleware
app.add_middleware(LoggingMiddleware)

# Error handlers
app.add_exception_handler(HippoError, hippo_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(SQLAlchemyError, store_error_handler)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(conversations.router, prefix=settings.api_prefix, tags=["conversations"])
app.include_router(loans.router, prefix=settings.api_prefix, tags=["loans"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "disabled",
        "endpoints": {
            "health": "/health",
            "conversations": f"{settings.api_prefix}/conversations",
            "loans": f"{settings.api_prefix}/loans"
        }
    }


# uvicorn hippo.main:app --reload
