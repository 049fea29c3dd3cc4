"""
Base service class for the session authorization service.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from typing import Dict, Any, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import AccessLayerException, ConfigurationError

REQUEST_ID_HEADER = "X-Request-ID"


class BaseService:
    """FastAPI skeleton shared by the service: logging, metrics, health and error mapping.

    Subclasses add their own routes and override ``_check_dependencies``
    to report what they hold in memory.
    """

    version = "1.0.0"

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config()
        configure_logging(service_name, self.config.log_level)

        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _create_app(self) -> FastAPI:
        # Interactive docs only on developer machines.
        docs_enabled = self.config.enable_docs and self.config.env == "local"
        app = FastAPI(
            title=f"{self.service_name.title()} Service",
            description="Session authorization decisions for facility proposals and visits",
            version=self.version,
            docs_url="/docs" if docs_enabled else None,
            redoc_url="/redoc" if docs_enabled else None,
        )
        return app

    def _setup_middleware(self):

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))

            try:
                response = await call_next(request)
                duration = time.time() - start_time

                response.headers[REQUEST_ID_HEADER] = request_id
                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration
                )
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )
                return response
            finally:
                clear_context()

    def _setup_routes(self):

        @self.app.on_event("shutdown")
        async def shutdown_event():
            await self._on_shutdown()

        @self.app.get("/health")
        async def health_check():
            """Liveness plus a summary of in-memory state."""
            try:
                dependencies = await self._check_dependencies()
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={"service": self.service_name, "status": "error", "error": str(e)}
                )

            self.metrics.record_health_check("ok")
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": round(time.time() - self._start_time, 3),
                "dependencies": dependencies,
                "version": self.version,
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(content=self.metrics.export(), media_type=CONTENT_TYPE_LATEST)

    def _setup_exception_handlers(self):

        @self.app.exception_handler(AccessLayerException)
        async def access_layer_exception_handler(request: Request, exc: AccessLayerException):
            self.logger.error("Access layer error", code=exc.code, message=exc.message, details=exc.details)
            status_code = 503 if isinstance(exc, ConfigurationError) else 400
            return JSONResponse(status_code=status_code, content=exc.to_response().model_dump())

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}}
            )

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report dependency state. Override in subclasses."""
        return {}

    async def _on_shutdown(self):
        self.logger.info("Service stopping", uptime_seconds=round(time.time() - self._start_time, 3))

    def run(self):
        """Run the service under uvicorn."""
        import uvicorn
        self.logger.info("Service starting", host=self.config.host, port=self.config.port, env=self.config.env)
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
