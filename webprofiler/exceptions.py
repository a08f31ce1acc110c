"""Exception hierarchy shared by the profiler, its storage and the web layer."""

from __future__ import annotations


class ProfilerError(Exception):
    """Base class for all profiler errors."""


class ConfigurationError(ProfilerError):
    """Raised when settings cannot be turned into working collaborators."""


class StorageError(ProfilerError):
    """Raised when a storage backend cannot read or write its data."""


class ProfileImportError(ProfilerError):
    """Raised when exported profile data cannot be decoded."""


class RouteNotFoundError(ProfilerError):
    """Raised when a URL is requested for a route that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Route "{name}" is not registered.')
        self.name = name


class NotFoundError(ProfilerError):
    """Maps to an HTTP 404 response."""


class TokenNotFoundError(NotFoundError):
    def __init__(self, token: str) -> None:
        super().__init__(f'Token "{token}" does not exist.')
        self.token = token


class PanelNotFoundError(NotFoundError):
    def __init__(self, message: str, panel: str, token: str | None = None) -> None:
        super().__init__(message)
        self.panel = panel
        self.token = token
