"""Tests for URL generation."""

import pytest
from starlette.responses import Response
from starlette.routing import Mount, Route, Router

from webprofiler.config import Settings
from webprofiler.exceptions import RouteNotFoundError
from webprofiler.main import create_application
from webprofiler.routing import UrlGenerator


def endpoint(request):
    return Response()


@pytest.fixture
def generator():
    routes = [
        Route("/info/{about}", endpoint, name="info"),
        Route("/export/{token}.txt", endpoint, name="export"),
        Route("/{token}/search/results", endpoint, name="results"),
    ]
    admin_routes = [Route("/users/{id:int}", endpoint, name="user")]
    router = Router(routes=[*routes, Mount("/admin", routes=admin_routes)])
    return UrlGenerator(router, [*routes, *admin_routes])


def test_path_params_fill_the_path(generator):
    assert generator.generate("info", {"about": "purge"}) == "/info/purge"
    assert generator.generate("export", {"token": "abc123"}) == "/export/abc123.txt"


def test_extra_params_become_query_and_none_is_dropped(generator):
    url = generator.generate(
        "results", {"token": "empty", "ip": "1.2.3.4", "method": None, "limit": 10}
    )

    assert url == "/empty/search/results?ip=1.2.3.4&limit=10"


def test_mounted_routes(generator):
    assert generator.generate("user", {"id": 7}) == "/admin/users/7"


def test_unknown_route_raises(generator):
    assert not generator.has_route("missing")
    with pytest.raises(RouteNotFoundError) as excinfo:
        generator.generate("missing", {})
    assert excinfo.value.name == "missing"


def test_registered_but_unmounted_route_raises():
    route = Route("/info/{about}", endpoint, name="info")
    generator = UrlGenerator(Router(routes=[]), [route])

    assert generator.has_route("info")
    with pytest.raises(RouteNotFoundError):
        generator.generate("info", {"about": "purge"})


def test_missing_path_param_raises(generator):
    with pytest.raises(RouteNotFoundError):
        generator.generate("info", {})


def test_root_path_prefix():
    route = Route("/info/{about}", endpoint, name="info")
    generator = UrlGenerator(Router(routes=[route]), [route], root_path="/app/")

    assert generator.generate("info", {"about": "x"}) == "/app/info/x"


class TestAssembledApplication:
    def make_generator(self, **overrides):
        settings = Settings(storage_dsn="memory:", log_level="WARNING", **overrides)
        app = create_application(settings)
        return app, app.state.profiler_controller.generator

    def test_profiler_routes(self):
        app, generator = self.make_generator()

        assert generator.generate("profiler_panel", {"token": "abc123"}) == "/_profiler/abc123"
        assert generator.generate("profiler_info", {"about": "purge"}) == "/_profiler/info/purge"
        assert generator.generate(
            "profiler_search_results", {"token": "empty", "ip": "10.0"}
        ) == "/_profiler/empty/search/results?ip=10.0"
        assert generator.generate("profiler_panel", {"token": "abc123"}) == app.url_path_for(
            "profiler_panel", token="abc123"
        )

    def test_custom_prefix(self):
        _, generator = self.make_generator(profiler_path="/debug")

        assert generator.generate("profiler_export", {"token": "abc123"}) == (
            "/debug/export/abc123.txt"
        )

    def test_toolbar_routes_only(self):
        _, generator = self.make_generator(profiler_routes_enabled=False)

        assert generator.generate("profiler_toolbar", {"token": "abc123"}) == "/_wdt/abc123"
        assert not generator.has_route("profiler_panel")
        with pytest.raises(RouteNotFoundError):
            generator.generate("profiler_panel", {"token": "abc123"})
