"""Request handlers of the profiler web UI."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional

import anyio.to_thread
from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.datastructures import UploadFile

from webprofiler.api.schemas import SearchQueryModel
from webprofiler.config import ToolbarPosition
from webprofiler.exceptions import (
    PanelNotFoundError,
    ProfileImportError,
    RouteNotFoundError,
    TokenNotFoundError,
)
from webprofiler.flash import AutoExpireFlashBag, get_flash_bag, get_session
from webprofiler.profiler.profiler import Profiler
from webprofiler.routing import UrlGenerator
from webprofiler.runtime import runtime_info
from webprofiler.templating import TemplateManager, TemplateRenderer

logger = logging.getLogger(__name__)

PANEL_ROUTE = "profiler_panel"
INFO_ROUTE = "profiler_info"
SEARCH_RESULTS_ROUTE = "profiler_search_results"

INFO_TEMPLATE = "profiler/info.html"
TOOLBAR_TEMPLATE = "profiler/toolbar.html"
SEARCH_TEMPLATE = "profiler/search.html"
RESULTS_TEMPLATE = "profiler/results.html"
RUNTIME_INFO_TEMPLATE = "profiler/runtime_info.html"

SEARCH_FIELDS = ("ip", "method", "url", "limit", "token")
SEARCH_SESSION_KEYS = {name: f"_profiler_search_{name}" for name in SEARCH_FIELDS}

_IP_DISALLOWED = re.compile(r"[^0-9.:]")


def sanitize_ip(value: Optional[str]) -> Optional[str]:
    """Keep only digits, dots and colons of an IP filter."""
    if value is None:
        return None
    return _IP_DISALLOWED.sub("", value) or None


class ProfilerController:
    def __init__(
        self,
        generator: UrlGenerator,
        profiler: Profiler,
        renderer: TemplateRenderer,
        template_manager: TemplateManager,
        toolbar_position: ToolbarPosition = "normal",
        flash_auto_expire: bool = False,
    ) -> None:
        self.generator = generator
        self.profiler = profiler
        self.renderer = renderer
        self.template_manager = template_manager
        self.toolbar_position = toolbar_position
        self.flash_auto_expire = flash_auto_expire

    def _render(self, template: str, context: Mapping[str, Any]) -> HTMLResponse:
        return HTMLResponse(self.renderer.render(template, context))

    def _redirect(self, route: str, params: Dict[str, Any]) -> RedirectResponse:
        return RedirectResponse(self.generator.generate(route, params), status_code=302)

    def panel(
        self, request: Request, token: str, panel: str = "request", page: str = "home"
    ) -> HTMLResponse:
        self.profiler.disable()

        profile = self.profiler.load_profile(token)
        if profile is None:
            return self._render(
                INFO_TEMPLATE, {"request": request, "about": "no_token", "token": token}
            )

        if not profile.has_collector(panel):
            raise PanelNotFoundError(
                f'Panel "{panel}" is not available for token "{token}".',
                panel=panel,
                token=token,
            )

        return self._render(
            self.template_manager.get_name(profile, panel),
            {
                "token": token,
                "profile": profile,
                "collector": profile.get_collector(panel),
                "panel": panel,
                "page": page,
                "request": request,
                "templates": self.template_manager.get_templates(profile),
                "is_ajax": request.headers.get("x-requested-with") == "XMLHttpRequest",
            },
        )

    def export(self, token: str) -> Response:
        self.profiler.disable()

        profile = self.profiler.load_profile(token)
        if profile is None:
            raise TokenNotFoundError(token)

        return Response(
            content=self.profiler.export(profile),
            status_code=200,
            headers={
                "Content-Type": "text/plain",
                "Content-Disposition": f"attachment; filename={token}.txt",
            },
        )

    def purge(self) -> RedirectResponse:
        self.profiler.disable()
        self.profiler.purge()

        return self._redirect(INFO_ROUTE, {"about": "purge"})

    async def import_profile(self, file: Optional[UploadFile]) -> RedirectResponse:
        self.profiler.disable()

        if file is None or not file.filename:
            return self._redirect(INFO_ROUTE, {"about": "upload_error"})

        data = await file.read()
        if not data:
            return self._redirect(INFO_ROUTE, {"about": "upload_error"})

        try:
            profile = await anyio.to_thread.run_sync(self.profiler.import_profile, data)
        except ProfileImportError as e:
            logger.warning(f"Rejected profile upload {file.filename!r}: {e}")
            return self._redirect(INFO_ROUTE, {"about": "upload_error"})

        if profile is None:
            return self._redirect(INFO_ROUTE, {"about": "already_exists"})

        return self._redirect(PANEL_ROUTE, {"token": profile.token})

    def info(self, request: Request, about: str) -> HTMLResponse:
        self.profiler.disable()

        return self._render(INFO_TEMPLATE, {"request": request, "about": about})

    def toolbar(
        self,
        request: Request,
        token: Optional[str],
        position: Optional[ToolbarPosition] = None,
    ) -> Response:
        self.profiler.disable()

        bag = get_flash_bag(request, auto_expire=self.flash_auto_expire)
        if isinstance(bag, AutoExpireFlashBag):
            # keep current flashes for one more request
            bag.set_all(bag.peek_all())

        if token is None:
            return Response()

        profile = self.profiler.load_profile(token)
        if profile is None:
            return Response()

        if position is None:
            position = self.toolbar_position

        url = None
        try:
            url = self.generator.generate(PANEL_ROUTE, {"token": token})
        except RouteNotFoundError:
            # the profiler pages are not mounted
            pass

        return self._render(
            TOOLBAR_TEMPLATE,
            {
                "request": request,
                "position": position,
                "profile": profile,
                "templates": self.template_manager.get_templates(profile),
                "profiler_url": url,
                "token": token,
            },
        )

    def search_bar(self, request: Request) -> HTMLResponse:
        self.profiler.disable()

        session = get_session(request)
        values = {
            name: session.get(key) if session is not None else None
            for name, key in SEARCH_SESSION_KEYS.items()
        }
        return self._render(SEARCH_TEMPLATE, {"request": request, **values})

    def search_results(
        self, request: Request, token: str, query: SearchQueryModel
    ) -> HTMLResponse:
        self.profiler.disable()

        profile = self.profiler.load_profile(token)
        return self._render(
            RESULTS_TEMPLATE,
            {
                "request": request,
                "token": token,
                "profile": profile,
                "templates": (
                    self.template_manager.get_templates(profile) if profile else {}
                ),
                "tokens": self.profiler.find(
                    query.ip, query.url, query.limit, query.method
                ),
                "ip": query.ip,
                "method": query.method,
                "url": query.url,
                "limit": query.limit,
                "panel": None,
            },
        )

    def search(self, request: Request, query: SearchQueryModel) -> RedirectResponse:
        self.profiler.disable()

        ip = sanitize_ip(query.ip)
        values = {
            "ip": ip,
            "method": query.method,
            "url": query.url,
            "limit": query.limit,
            "token": query.token,
        }

        session = get_session(request)
        if session is not None:
            for name, key in SEARCH_SESSION_KEYS.items():
                session[key] = values[name]

        if query.token:
            return self._redirect(PANEL_ROUTE, {"token": query.token})

        tokens = self.profiler.find(ip, query.url, query.limit, query.method)
        return self._redirect(
            SEARCH_RESULTS_ROUTE,
            {
                "token": tokens[0]["token"] if tokens else "empty",
                "ip": ip,
                "method": query.method,
                "url": query.url,
                "limit": query.limit,
            },
        )

    def runtime_info(self, request: Request) -> HTMLResponse:
        self.profiler.disable()

        return self._render(
            RUNTIME_INFO_TEMPLATE, {"request": request, "info": runtime_info()}
        )
