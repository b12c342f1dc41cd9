"""FastAPI application factory and uvicorn runner."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import APIDependencies, router as api_router, set_dependencies
from .config import Settings, settings as default_settings
from .errors import GatewayError
from .providers import build_registry
from .providers.registry import ProviderRegistry
from .services.orchestrator import AskAIService
from .services.rate_limiter import SlidingWindowRateLimiter
from .utils.logging_setup import setup_logging


logger = structlog.get_logger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request body: " + "; ".join(problems)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.info("Request rejected", path=request.url.path, status=exc.status_code, reason=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        logger.info("Malformed request", path=request.url.path, reason=message)
        return JSONResponse(status_code=400, content={"ok": False, "error": message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ProviderRegistry] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI app."""
    settings = settings or default_settings
    registry = registry if registry is not None else build_registry(settings)
    if rate_limiter is None:
        rate_limiter = SlidingWindowRateLimiter(
            capacity=settings.rate_limit.max_requests_per_ip,
            window_seconds=settings.rate_limit.window_seconds,
        )

    service = AskAIService(registry, rate_limiter, settings)
    set_dependencies(APIDependencies(service=service, registry=registry, settings=settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("ask-ai gateway started", providers=registry.names())
        try:
            yield
        finally:
            rate_limiter.reset()
            logger.info("ask-ai gateway shutdown complete")

    app = FastAPI(
        title="ask-ai gateway",
        description="Multi-provider AI page generation and editing gateway",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "providers": len(registry),
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the gateway under uvicorn."""
    import uvicorn

    setup_logging()

    host = host or default_settings.server.host
    port = port or default_settings.server.port

    logger.info("Starting ask-ai gateway", env=default_settings.env, host=host, port=port)

    if default_settings.server.reload:
        uvicorn.run(
            "askai.server:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_level=default_settings.logging.level.lower(),
        )
        return

    uvicorn.run(
        create_app(),
        host=host,
        port=port,
        log_level=default_settings.logging.level.lower(),
        access_log=True,
    )


def main():
    """Main entry point for the server."""
    run_server()


if __name__ == "__main__":
    main()
