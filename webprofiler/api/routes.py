"""HTTP route handlers for the profiler pages and the debug toolbar."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.datastructures import UploadFile

from webprofiler.config import ToolbarPosition
from webprofiler.controller import (
    INFO_ROUTE,
    PANEL_ROUTE,
    SEARCH_RESULTS_ROUTE,
    ProfilerController,
)

from .schemas import SearchQueryModel


profiler_router = APIRouter(tags=["profiler"])
toolbar_router = APIRouter(tags=["profiler"])


def get_controller(request: Request) -> ProfilerController:
    return request.app.state.profiler_controller


def load_search_query(
    ip: Optional[str] = None,
    method: Optional[str] = None,
    url: Optional[str] = None,
    limit: Optional[str] = None,
    token: Optional[str] = None,
) -> SearchQueryModel:
    return SearchQueryModel(ip=ip, method=method, url=url, limit=limit, token=token)


@toolbar_router.get("/", name="profiler_toolbar_empty", include_in_schema=False)
def toolbar_without_token(
    request: Request, controller: ProfilerController = Depends(get_controller)
) -> Response:
    return controller.toolbar(request, None)


@toolbar_router.get("/{token}", name="profiler_toolbar", response_class=HTMLResponse)
def toolbar(
    request: Request,
    token: str,
    position: Optional[ToolbarPosition] = None,
    controller: ProfilerController = Depends(get_controller),
) -> Response:
    return controller.toolbar(request, token, position)


# Fixed paths come first; "/{token}" would otherwise swallow them.


@profiler_router.get("/search_bar", name="profiler_search_bar", response_class=HTMLResponse)
def search_bar(
    request: Request, controller: ProfilerController = Depends(get_controller)
) -> HTMLResponse:
    return controller.search_bar(request)


@profiler_router.get("/search", name="profiler_search")
def search(
    request: Request,
    query: SearchQueryModel = Depends(load_search_query),
    controller: ProfilerController = Depends(get_controller),
) -> RedirectResponse:
    return controller.search(request, query)


@profiler_router.get("/purge", name="profiler_purge")
def purge(
    controller: ProfilerController = Depends(get_controller),
) -> RedirectResponse:
    return controller.purge()


@profiler_router.post("/import", name="profiler_import")
async def import_profile(
    request: Request, controller: ProfilerController = Depends(get_controller)
) -> RedirectResponse:
    # A "file" part sent as a plain field counts as no upload
    form = await request.form()
    upload = form.get("file")
    return await controller.import_profile(
        upload if isinstance(upload, UploadFile) else None
    )


@profiler_router.get("/export/{token}.txt", name="profiler_export")
def export(
    token: str, controller: ProfilerController = Depends(get_controller)
) -> Response:
    return controller.export(token)


@profiler_router.get(
    "/runtime_info", name="profiler_runtime_info", response_class=HTMLResponse
)
def runtime_info(
    request: Request, controller: ProfilerController = Depends(get_controller)
) -> HTMLResponse:
    return controller.runtime_info(request)


@profiler_router.get("/info/{about}", name=INFO_ROUTE, response_class=HTMLResponse)
def info(
    request: Request,
    about: str,
    controller: ProfilerController = Depends(get_controller),
) -> HTMLResponse:
    return controller.info(request, about)


@profiler_router.get(
    "/{token}/search/results", name=SEARCH_RESULTS_ROUTE, response_class=HTMLResponse
)
def search_results(
    request: Request,
    token: str,
    query: SearchQueryModel = Depends(load_search_query),
    controller: ProfilerController = Depends(get_controller),
) -> HTMLResponse:
    return controller.search_results(request, token, query)


@profiler_router.get("/{token}", name=PANEL_ROUTE, response_class=HTMLResponse)
def panel(
    request: Request,
    token: str,
    panel: str = "request",
    page: str = "home",
    controller: ProfilerController = Depends(get_controller),
) -> HTMLResponse:
    return controller.panel(request, token, panel, page)
