"""FastAPI application factory and global exception handling."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from webprofiler import __version__ as app_version
from webprofiler.api.routes import profiler_router, toolbar_router
from webprofiler.config import Settings, get_settings
from webprofiler.controller import ProfilerController
from webprofiler.exceptions import NotFoundError
from webprofiler.middleware import ProfilerMiddleware
from webprofiler.panels.loader import load_panel_registry
from webprofiler.profiler.collectors import default_collectors
from webprofiler.profiler.profiler import Profiler
from webprofiler.profiler.storage import create_storage
from webprofiler.routing import UrlGenerator
from webprofiler.templating import TemplateManager, TemplateRenderer

logger = logging.getLogger(__name__)


def install_profiler(app: FastAPI, settings: Settings) -> ProfilerController:
    """Mount the profiler pages, toolbar and capture middleware on ``app``."""
    profiler = Profiler(
        create_storage(settings.storage_dsn),
        default_collectors(settings.app_name, settings.environment),
        default_limit=settings.search_default_limit,
    )
    renderer = TemplateRenderer(settings.template_dirs)
    generator = UrlGenerator(app.router, toolbar_router.routes)
    panels = load_panel_registry(settings.panels_file)
    controller = ProfilerController(
        generator=generator,
        profiler=profiler,
        renderer=renderer,
        template_manager=TemplateManager(renderer, panels),
        toolbar_position=settings.toolbar_position,
        flash_auto_expire=settings.flash_auto_expire,
    )
    app.state.profiler = profiler
    app.state.profiler_controller = controller

    app.include_router(toolbar_router, prefix=settings.toolbar_path)
    if settings.profiler_routes_enabled:
        app.include_router(profiler_router, prefix=settings.profiler_path)
        generator.register(profiler_router.routes)
    else:
        logger.info("Profiler pages are disabled; only the toolbar is mounted")

    if settings.profiler_enabled:
        app.add_middleware(
            ProfilerMiddleware,
            profiler=profiler,
            link_prefix=(
                settings.profiler_path if settings.profiler_routes_enabled else None
            ),
        )

    # Added last so it wraps the capture middleware
    if settings.session_secret_key:
        app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404, content={"error": "not_found", "details": str(exc)}
        )

    return controller


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """Create a standalone application with the profiler installed."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Developer profiler for ASGI applications.",
        version=app_version,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict) and "error" in detail:
            payload = detail
        else:
            payload = {"error": "http_error", "details": detail}
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.get("/healthz", tags=["health"])
    async def healthz() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": app_version,
            "profiler_enabled": settings.profiler_enabled,
            "storage": settings.storage_dsn.partition(":")[0],
        }

    install_profiler(app, settings)
    return app
