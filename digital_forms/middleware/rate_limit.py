"""
Rate limiting using slowapi.

Every route gets the default limit. Login and the anonymous link routes
(public form lookup and submission) carry their own, stricter limits, since
link codes are the only credential those routes check.
"""
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from digital_forms.config import settings
from digital_forms.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """
    Get client IP address from request.
    Handles X-Forwarded-For header for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a 429 in the same error envelope as every other API error."""
    logger.warning(
        sanitize_log_message(
            "Rate limit exceeded",
            Path=request.url.path,
            Method=request.method,
            IP=get_client_ip(request),
            Limit=exc.detail
        )
    )
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "error_code": "rate_limited"}
    )
    return request.app.state.limiter._inject_headers(
        response, getattr(request.state, "view_rate_limit", None)
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """
    Attach the limiter and its 429 handler to the application.

    The handler is always registered; the global middleware is added only
    when rate limiting is enabled.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting is disabled")
        return

    app.add_middleware(SlowAPIMiddleware)

    logger.info(
        f"Rate limiting enabled: default={settings.RATE_LIMIT_DEFAULT}, "
        f"auth={settings.RATE_LIMIT_AUTH}, public={settings.RATE_LIMIT_PUBLIC}"
    )


def rate_limit_auth():
    """Rate limit decorator for login. The endpoint must take `request: Request`."""
    return limiter.limit(settings.RATE_LIMIT_AUTH)


def rate_limit_public():
    """
    Rate limit decorator for the unauthenticated link routes, keyed by client IP.
    Slows down enumeration of link codes. The endpoint must take `request: Request`.
    """
    return limiter.limit(settings.RATE_LIMIT_PUBLIC)
