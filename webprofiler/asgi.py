"""ASGI entry point: ``uvicorn webprofiler.asgi:app``."""

from webprofiler.main import create_application

app = create_application()
