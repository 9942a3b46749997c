import sys
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from photo_pipeline.config import (
    IssuerConfig,
    ProcessorConfig,
    Settings,
    load_handler_config,
    settings,
)
from photo_pipeline.models.upload import ErrorResponse
from photo_pipeline.routes.events import router as events_router
from photo_pipeline.routes.health import router as health_router
from photo_pipeline.routes.upload import router as upload_router
from photo_pipeline.services.errors import ConfigurationError, PipelineError
from photo_pipeline.services.storage import BlobStore


def _configure_logging(app_settings: Settings) -> None:
    logger.configure(patcher=lambda record: record["extra"].setdefault("request_id", "-"))
    logger.remove()
    logger.add(
        sys.stderr,
        level=app_settings.log_level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | req={extra[request_id]} | {name}:{function}:{line} | {message}",
    )


def _load_configs(app: FastAPI, app_settings: Settings) -> None:
    app.state.settings = app_settings
    app.state.issuer_config = load_handler_config(IssuerConfig.from_settings, app_settings)
    app.state.processor_config = load_handler_config(ProcessorConfig.from_settings, app_settings)
    for name in ("issuer_config", "processor_config"):
        config = getattr(app.state, name)
        if isinstance(config, ConfigurationError):
            logger.bind(request_id="-").error("Configuration invalid handler={} error={}", name, str(config))
    # One shared client per process; BlobServiceClient is thread-safe and pools connections.
    processor_config = app.state.processor_config
    app.state.blob_store = (
        BlobStore.from_credentials(processor_config.credentials)
        if isinstance(processor_config, ProcessorConfig)
        else None
    )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _configure_logging(app_settings)
        _load_configs(app, app_settings)
        logger.bind(request_id="-").info(
            "Starting app app_name={} debug={} log_level={} landing_zone={}",
            app_settings.app_name,
            app_settings.debug,
            app_settings.log_level,
            app_settings.landing_zone_container,
        )
        yield
        logger.bind(request_id="-").info("Shutting down app app_name={}", app_settings.app_name)

    app = FastAPI(title=app_settings.app_name, debug=app_settings.debug, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(upload_router)
    app.include_router(events_router)

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
        logger.error(
            "Request failed path={} status={} error={} message={}",
            request.url.path,
            exc.status_code,
            exc.error,
            str(exc),
        )
        body = ErrorResponse(error=exc.error, message=str(exc))
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Request body rejected path={} errors={}", request.url.path, exc.errors())
        body = ErrorResponse(error="Invalid request body", message=str(exc))
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.middleware("http")
    async def add_request_context(request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid4()))
        start = time.perf_counter()
        with logger.contextualize(request_id=request_id):
            logger.info("Request start method={} path={}", request.method, request.url.path)
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("Request failed method={} path={}", request.method, request.url.path)
                raise
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "Request finish method={} path={} status={} duration_ms={:.2f}",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
        response.headers["X-Request-ID"] = request_id
        return response

    return app


app = create_app()
