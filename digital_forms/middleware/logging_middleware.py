import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from digital_forms.config import settings
from digital_forms.core.logging_utils import (
    mask_headers,
    mask_path,
    request_id_var,
    sanitize_log_message,
)

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Assign a request ID to every request and log request/response pairs.

    The ID is taken from an incoming X-Request-ID header when present, exposed
    to log records through a context variable, and echoed in the response.
    """

    # Paths whose request/response lines are not logged
    SKIP_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")

    async def dispatch(self, request: Request, call_next):
        request_id = (request.headers.get("X-Request-ID") or str(uuid.uuid4()))[:64]
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        path = request.url.path
        quiet = (
            not settings.LOG_ENABLE_REQUEST_LOGGING
            or path == "/"
            or any(path.startswith(p) for p in self.SKIP_PATHS)
        )
        log_path = mask_path(path)
        method = request.method
        client_ip = request.client.host if request.client else None
        start_time = time.time()

        try:
            if not quiet:
                logger.debug(
                    sanitize_log_message(
                        f"Request: {method} {log_path}",
                        IP=client_ip,
                        QueryParams=dict(request.query_params),
                        Headers=mask_headers(dict(request.headers))
                    )
                )

            try:
                response = await call_next(request)
            except Exception as e:
                logger.exception(
                    sanitize_log_message(
                        f"Exception in request: {method} {log_path}",
                        ProcessTime=f"{time.time() - start_time:.3f}s",
                        IP=client_ip,
                        Error=str(e)
                    )
                )
                raise

            response.headers["X-Request-ID"] = request_id
            if not quiet:
                logger.info(
                    sanitize_log_message(
                        f"Response: {method} {log_path}",
                        Status=response.status_code,
                        ProcessTime=f"{time.time() - start_time:.3f}s",
                        IP=client_ip
                    )
                )
            return response
        finally:
            request_id_var.reset(token)
