# marketplace/middleware/request_logging.py
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware

from marketplace.utils.logging_config import request_id_var

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        start = time.time()

        try:
            response = await call_next(request)
            duration_ms = (time.time() - start) * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f} ms)")
        except Exception:
            logger.exception(f"{request.method} {request.url.path} failed")
            raise
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response
