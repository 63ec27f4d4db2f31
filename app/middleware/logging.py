import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome and latency."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        client = request.client.host if request.client else "-"
        label = f"[{request_id}] {request.method} {request.url.path} from {client}"

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(f"{label} - ERROR after {self._elapsed_ms(start)} ms: {exc}",
                         extra={"request_id": request_id})
            raise

        duration_ms = self._elapsed_ms(start)
        if response.status_code >= 400:
            level = logging.WARNING
        elif duration_ms >= settings.SLOW_REQUEST_MS:
            level = logging.WARNING
            label = f"{label} (slow)"
        else:
            level = logging.INFO
        logger.log(level, f"{label} - {response.status_code} ({duration_ms} ms)",
                   extra={"request_id": request_id, "status_code": response.status_code, "duration_ms": duration_ms})

        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)
