import functools
import inspect
import uuid
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from urllib3.util.url import Url, parse_url

from renteasy.core import Config, get_logger, ifnone, parse_log_level
from renteasy.services.errors import ApiError, http_error_handler, validation_error_handler
from renteasy.services.types import EndpointsOutput, Heartbeat, ServerStatus, StatusOutput

DEFAULT_SERVICE_URL = "http://localhost:8000"


class Service:
    """Base class for RentEasy HTTP services.

    Owns a FastAPI app, a structured logger and the registry of endpoints. Subclasses register their handlers
    with `add_endpoint` and hook into the app lifecycle by overriding `startup_initialize` / `shutdown_cleanup`.

    Every handler registered through `add_endpoint` is guarded: `HTTPException`s pass through untouched, any
    other exception is logged with its traceback and answered with a 500 carrying the endpoint's error message.

    Example:
        ```python
        class EchoService(Service):
            def __init__(self, **kwargs):
                super().__init__(**kwargs)
                self.add_endpoint("/echo", self.echo)

            def echo(self, payload: EchoInput) -> EchoOutput:
                return EchoOutput(echoed=payload.message)

        EchoService.launch(url="http://localhost:8080")
        ```
    """

    def __init__(
        self,
        *,
        url: str | Url | None = None,
        summary: str | None = None,
        description: str | None = None,
        config: Config | None = None,
        log_dir: str | None = None,
        log_level: str | None = None,
    ):
        self.id = uuid.uuid4()
        self.name = type(self).__name__
        self.config = ifnone(config, Config())
        self.log_level = (log_level or "INFO").upper()
        self.logger = get_logger(
            self.name.lower(),
            log_dir=log_dir,
            logger_level=parse_log_level(self.log_level),
            structlog_bind={"service": self.name},
        )
        self._url = self.build_url(url)
        self._status = ServerStatus.AVAILABLE
        self._endpoints: List[str] = []
        self._endpoints_metadata: Dict[str, Dict[str, Any]] = {}

        self.app = FastAPI(
            title=self.name,
            summary=summary,
            description=description or "",
            lifespan=self._lifespan,
        )
        self.app.add_exception_handler(StarletteHTTPException, http_error_handler)
        self.app.add_exception_handler(RequestValidationError, validation_error_handler)

        self.add_endpoint("/status", self.status, methods=["GET"])
        self.add_endpoint("/heartbeat", self.heartbeat, methods=["GET"])
        self.add_endpoint("/endpoints", self.endpoints, methods=["GET"])

    # -------------------------------------------------------------------------
    # URL handling
    # -------------------------------------------------------------------------

    @property
    def url(self) -> Url:
        return self._url

    @classmethod
    def default_url(cls) -> Url:
        return parse_url(DEFAULT_SERVICE_URL)

    @classmethod
    def build_url(cls, url: str | Url | None = None) -> Url:
        """Parse the given URL, falling back to `default_url()` when none is given."""
        if url is None:
            return cls.default_url()
        if isinstance(url, Url):
            return url
        if "://" not in url:
            url = f"http://{url}"
        return parse_url(url)

    # -------------------------------------------------------------------------
    # Endpoint registration
    # -------------------------------------------------------------------------

    def add_endpoint(
        self,
        path: str,
        func: Callable,
        methods: Optional[List[str]] = None,
        error_message: str = "Server error",
        api_route_kwargs: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Register a handler on the FastAPI app.

        Args:
            path: Route path, with or without a leading slash.
            func: Handler; its signature drives FastAPI's request parsing and response model.
            methods: HTTP methods, POST by default.
            error_message: Message returned with the 500 response when the handler fails unexpectedly.
            api_route_kwargs: Extra keyword arguments for `FastAPI.add_api_route`.
        """
        path = "/" + path.removeprefix("/")
        methods = ifnone(methods, ["POST"])
        api_route_kwargs = ifnone(api_route_kwargs, {})

        if path not in self._endpoints:
            self._endpoints.append(path)
            self._endpoints_metadata[path] = {"methods": []}
        known_methods = self._endpoints_metadata[path]["methods"]
        known_methods.extend(m for m in methods if m not in known_methods)

        self.app.add_api_route(
            path,
            endpoint=self._guard(path, func, error_message),
            methods=methods,
            **api_route_kwargs,
        )

    def _guard(self, path: str, func: Callable, error_message: str) -> Callable:
        logger = self.logger

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except HTTPException:
                    raise
                except Exception as e:
                    logger.exception("Endpoint failed", path=path, error=str(e))
                    raise ApiError(500, error_message) from e

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as e:
                logger.exception("Endpoint failed", path=path, error=str(e))
                raise ApiError(500, error_message) from e

        return wrapper

    # -------------------------------------------------------------------------
    # Default endpoints
    # -------------------------------------------------------------------------

    def status(self) -> StatusOutput:
        return StatusOutput(status=self._status)

    def heartbeat(self) -> Heartbeat:
        return Heartbeat(
            status=self._status, server_id=str(self.id), message=f"{self.name} is {self._status.value.lower()}"
        )

    def endpoints(self) -> EndpointsOutput:
        return EndpointsOutput(endpoints=list(self._endpoints))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.startup_initialize()
        try:
            yield
        finally:
            self._status = ServerStatus.DOWN
            await self.shutdown_cleanup()

    async def startup_initialize(self) -> None:
        """Called once before the app starts serving requests."""
        self.logger.info("Service starting", url=str(self.url))

    async def shutdown_cleanup(self) -> None:
        """Called once after the app stops serving requests."""
        self.logger.info("Service stopped")

    @classmethod
    def launch(cls, *, url: str | Url | None = None, log_level: str | None = None, **kwargs) -> "Service":
        """Create the service and serve it with uvicorn until interrupted.

        ``log_level`` is the uvicorn log level; it defaults to the service's own ``log_level``.
        """
        service = cls(url=url, **kwargs)
        host = service.url.host or "0.0.0.0"
        port = service.url.port or 80
        service.logger.info("Launching service", host=host, port=port)
        uvicorn.run(service.app, host=host, port=port, log_level=ifnone(log_level, service.log_level).lower())
        return service
