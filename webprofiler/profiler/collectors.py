"""Data collectors turning a finished request into named profile sections."""

from __future__ import annotations

import platform
import resource
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, MutableMapping, Optional, Tuple

import fastapi
import starlette
from starlette.requests import Request

from webprofiler import __version__

SENSITIVE_HEADERS = frozenset(
    {"authorization", "proxy-authorization", "cookie", "set-cookie", "x-api-key"}
)
MASK = "******"


@dataclass(slots=True)
class Exchange:
    """One request/response pair observed by the capture middleware."""

    token: str
    scope: MutableMapping[str, Any]
    start_time: float
    end_time: float = 0.0
    status_code: int = 0
    response_headers: List[Tuple[bytes, bytes]] = field(default_factory=list)

    @property
    def request(self) -> Request:
        return Request(self.scope)

    @property
    def ip(self) -> Optional[str]:
        client = self.scope.get("client")
        return client[0] if client else None

    @property
    def method(self) -> Optional[str]:
        return self.scope.get("method")

    @property
    def url(self) -> str:
        return str(self.request.url)

    @property
    def duration_ms(self) -> float:
        return round((self.end_time - self.start_time) * 1000, 3)

    def response_header(self, name: str) -> Optional[str]:
        key = name.lower().encode("latin-1")
        for header_key, value in self.response_headers:
            if header_key.lower() == key:
                return value.decode("latin-1")
        return None


class DataCollector(ABC):
    name: str

    @abstractmethod
    def collect(self, exchange: Exchange) -> Dict[str, Any]:
        """Return the data stored under ``self.name`` in the profile."""


def _mask_headers(headers: List[Tuple[str, str]]) -> Dict[str, str]:
    return {
        key: MASK if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers
    }


class RequestDataCollector(DataCollector):
    name = "request"

    def collect(self, exchange: Exchange) -> Dict[str, Any]:
        request = exchange.request
        route = exchange.scope.get("route")
        endpoint = exchange.scope.get("endpoint")
        return {
            "method": exchange.method,
            "path": request.url.path,
            "query": dict(request.query_params),
            "request_headers": _mask_headers(request.headers.items()),
            "response_headers": _mask_headers(
                [
                    (k.decode("latin-1"), v.decode("latin-1"))
                    for k, v in exchange.response_headers
                ]
            ),
            "client": exchange.ip,
            "status_code": exchange.status_code,
            "content_type": exchange.response_header("content-type"),
            "route": getattr(route, "name", None),
            "endpoint": getattr(endpoint, "__name__", None),
            "path_params": {
                k: str(v) for k, v in exchange.scope.get("path_params", {}).items()
            },
        }


class TimeDataCollector(DataCollector):
    name = "time"

    def collect(self, exchange: Exchange) -> Dict[str, Any]:
        return {
            "start_time": exchange.start_time,
            "duration_ms": exchange.duration_ms,
        }


class MemoryDataCollector(DataCollector):
    name = "memory"

    def collect(self, exchange: Exchange) -> Dict[str, Any]:
        peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is in bytes on macOS and kilobytes elsewhere
        if sys.platform != "darwin":
            peak *= 1024
        return {"peak_memory_bytes": peak}


class ConfigDataCollector(DataCollector):
    name = "config"

    def __init__(self, app_name: str, environment: str) -> None:
        self.app_name = app_name
        self.environment = environment

    def collect(self, exchange: Exchange) -> Dict[str, Any]:
        return {
            "token": exchange.token,
            "app_name": self.app_name,
            "environment": self.environment,
            "profiler_version": __version__,
            "python_version": platform.python_version(),
            "python_implementation": platform.python_implementation(),
            "fastapi_version": fastapi.__version__,
            "starlette_version": starlette.__version__,
        }


def default_collectors(app_name: str, environment: str) -> List[DataCollector]:
    return [
        RequestDataCollector(),
        TimeDataCollector(),
        MemoryDataCollector(),
        ConfigDataCollector(app_name, environment),
    ]
