import logging
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.api.router import api_router
from digital_forms.config import settings
from digital_forms.core.exceptions import DigitalFormsException, StoreUnavailableException
from digital_forms.core.logging_config import setup_logging, cleanup_old_logs
from digital_forms.core.logging_utils import sanitize_log_message
from digital_forms.database import AsyncSessionLocal, close_db, get_db, init_db
from digital_forms.middleware.logging_middleware import LoggingMiddleware
from digital_forms.middleware.rate_limit import setup_rate_limiting
from digital_forms.middleware.security import setup_security_middleware
from digital_forms.services.user_service import UserService

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
)


@app.on_event("startup")
async def startup_event():
    """Configure logging, create tables and seed the bootstrap admin."""
    setup_logging()
    cleanup_old_logs()
    await init_db()
    async with AsyncSessionLocal() as session:
        await UserService.ensure_bootstrap_admin(session)
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    await close_db()
    logger.info("Application shutdown complete")


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Accept", "Origin"],
)

# Security middleware (request size limit + security headers)
setup_security_middleware(app, max_request_size=settings.MAX_REQUEST_SIZE)

# Request ID + request logging (outermost, so every log line carries the ID)
app.add_middleware(LoggingMiddleware)

# Rate limiting
setup_rate_limiting(app)

# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


def _error_response(status_code: int, detail: str, error_code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error_code": error_code},
        headers=headers
    )


@app.exception_handler(DigitalFormsException)
async def domain_exception_handler(request: Request, exc: DigitalFormsException):
    log = logger.error if isinstance(exc, StoreUnavailableException) else logger.warning
    log(
        sanitize_log_message(
            f"Request failed: {exc.error_code}",
            Path=request.url.path,
            Method=request.method,
            IP=request.client.host if request.client else None,
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail, exc.error_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    detail = "; ".join(problems) or "Invalid request"

    logger.warning(
        sanitize_log_message(
            "Request validation failed",
            Path=request.url.path,
            Method=request.method,
            Detail=detail
        )
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, detail, "invalid_argument")


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
async def store_unavailable_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        sanitize_log_message(
            "Database unavailable",
            Path=request.url.path,
            Method=request.method,
            ExceptionType=type(exc).__name__
        ),
        exc_info=True
    )
    unavailable = StoreUnavailableException()
    return _error_response(unavailable.status_code, unavailable.detail, unavailable.error_code)


# Generic exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(
        sanitize_log_message(
            f"Unhandled exception: {type(exc).__name__}",
            Path=request.url.path,
            Method=request.method,
            IP=request.client.host if request.client else None,
            ExceptionType=type(exc).__name__,
            ExceptionMessage=str(exc)
        )
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error" if settings.is_production else str(exc),
        "internal_error"
    )


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint; verifies the database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Health check failed: database unreachable", exc_info=True)
        raise StoreUnavailableException()
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": f"{settings.API_PREFIX}/docs"
    }
