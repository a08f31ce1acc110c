"""Developer profiler web UI for ASGI applications."""

__version__ = "1.0.0"
