"""Request logging middleware for RentEasy services."""

import time
import uuid
from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from renteasy.core.logger import get_logger

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one structured event per request.

    Every request produces a ``Request completed`` event carrying the method, path, status code and (optionally)
    the wall-clock duration. An incoming ``X-Request-ID`` header is reused, otherwise a fresh id is generated, and
    the id is echoed back on the response when ``add_request_id_header`` is set.

    Example:
        from renteasy.services import Service

        class MyService(Service):
            def __init__(self, **kwargs):
                super().__init__(**kwargs)
                self.app.add_middleware(RequestLoggingMiddleware, service_name=self.name, logger=self.logger)
    """

    def __init__(
        self,
        app,
        service_name: str = "renteasy",
        log_metrics: bool = True,
        add_request_id_header: bool = True,
        logger: Optional[Any] = None,
    ):
        super().__init__(app)
        self.service_name = service_name
        self.log_metrics = log_metrics
        self.add_request_id_header = add_request_id_header
        self.logger = logger or get_logger("requests")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "Request failed",
                service=self.service_name,
                method=request.method,
                path=request.url.path,
                request_id=request_id,
                error=str(e),
            )
            raise

        fields = {
            "service": self.service_name,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "request_id": request_id,
        }
        if self.log_metrics:
            fields["duration_ms"] = round((time.perf_counter() - start) * 1000, 2)
        self.logger.info("Request completed", **fields)

        if self.add_request_id_header:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response
