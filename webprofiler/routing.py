"""URL generation from route names."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from starlette.datastructures import URL
from starlette.routing import BaseRoute, NoMatchFound, Router

from webprofiler.exceptions import RouteNotFoundError


class UrlGenerator:
    """
    Builds URLs for named routes.

    Parameters matching the route's path parameters fill the path; the rest
    become query parameters. ``None`` values are dropped.

    Only routes handed to ``register`` can be generated. Resolution goes
    through the router's public ``url_path_for``, so it works however the
    routes were included.
    """

    def __init__(
        self,
        router: Router,
        routes: Iterable[BaseRoute] = (),
        root_path: str = "",
    ) -> None:
        self.router = router
        self.root_path = root_path.rstrip("/")
        self._path_params: Dict[str, FrozenSet[str]] = {}
        self.register(routes)

    def register(self, routes: Iterable[BaseRoute]) -> None:
        for route in routes:
            name = getattr(route, "name", None)
            if name:
                self._path_params[name] = frozenset(
                    getattr(route, "param_convertors", {})
                )

    def has_route(self, name: str) -> bool:
        return name in self._path_params

    def generate(self, name: str, params: Optional[Mapping[str, Any]] = None) -> str:
        if name not in self._path_params:
            raise RouteNotFoundError(name)

        remaining = {k: v for k, v in (params or {}).items() if v is not None}
        path_params = {
            k: remaining.pop(k) for k in list(remaining) if k in self._path_params[name]
        }

        try:
            path = self.router.url_path_for(name, **path_params)
        except NoMatchFound as exc:
            raise RouteNotFoundError(name) from exc

        url = URL(self.root_path + str(path))
        if remaining:
            url = url.include_query_params(**remaining)
        return str(url)
