from renteasy.services.errors import ApiError
from renteasy.services.middleware import RequestLoggingMiddleware
from renteasy.services.service import Service
from renteasy.services.types import EndpointsOutput, Heartbeat, ServerStatus, StatusOutput

__all__ = [
    "ApiError",
    "EndpointsOutput",
    "Heartbeat",
    "RequestLoggingMiddleware",
    "ServerStatus",
    "Service",
    "StatusOutput",
]
