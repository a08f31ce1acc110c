import logging
import time
from typing import Any, Awaitable, Callable, Optional

import anyio
import anyio.to_thread
from starlette.datastructures import MutableHeaders

from webprofiler.exceptions import StorageError
from webprofiler.profiler.collectors import Exchange
from webprofiler.profiler.profiler import Profiler

logger = logging.getLogger(__name__)


class ProfilerMiddleware:
    """
    ASGI middleware that records a profile for every HTTP request.

    Handlers can opt out of capture through ``Profiler.disable()``; the
    profiler's own pages do so.
    """

    def __init__(
        self,
        app: Any,
        profiler: Profiler,
        link_prefix: Optional[str] = None,
    ) -> None:
        self._app = app
        self.profiler = profiler
        self.link_prefix = link_prefix.rstrip("/") if link_prefix else None

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[[], Awaitable[Any]],
        send: Callable[[dict[str, Any]], Awaitable[Any]],
    ) -> Any:
        if scope["type"] != "http":
            return await self._app(scope, receive, send)

        with self.profiler.capture() as state:
            exchange = Exchange(token=state.token, scope=scope, start_time=time.time())

            async def wrapped_send(message: dict[str, Any]) -> None:
                if message["type"] == "http.response.start":
                    exchange.status_code = message.get("status", 0)
                    if state.enabled:
                        headers = MutableHeaders(scope=message)
                        headers.append("X-Debug-Token", state.token)
                        if self.link_prefix:
                            headers.append(
                                "X-Debug-Token-Link", f"{self.link_prefix}/{state.token}"
                            )
                    exchange.response_headers = list(message.get("headers", []))

                await send(message)

            try:
                await self._app(scope, receive, wrapped_send)
            except Exception:
                exchange.status_code = exchange.status_code or 500
                raise
            finally:
                exchange.end_time = time.time()
                if state.enabled:
                    with anyio.CancelScope(shield=True):
                        await self._save(exchange)

    async def _save(self, exchange: Exchange) -> None:
        profile = self.profiler.collect(exchange)
        try:
            await anyio.to_thread.run_sync(self.profiler.save_profile, profile)
        except StorageError as e:
            logger.error(f"Unable to save profile {profile.token}: {e}")
            return
        logger.debug(f"Saved profile {profile.token} for {profile.method} {profile.url}")
