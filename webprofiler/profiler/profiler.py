"""Profiler service: capture switch, persistence and import/export."""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence

import orjson
from pydantic import ValidationError

from webprofiler.exceptions import ProfileImportError
from webprofiler.profiler.collectors import DataCollector, Exchange
from webprofiler.profiler.models import Profile
from webprofiler.profiler.storage import IndexEntry, ProfilerStorage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CaptureState:
    """Capture switch for the request currently being handled."""

    token: str
    enabled: bool = True


_capture: ContextVar[Optional[CaptureState]] = ContextVar(
    "webprofiler_capture", default=None
)


def generate_token() -> str:
    return secrets.token_hex(3)


class Profiler:
    def __init__(
        self,
        storage: ProfilerStorage,
        collectors: Sequence[DataCollector] = (),
        default_limit: int = 10,
    ) -> None:
        self.storage = storage
        self._collectors = {collector.name: collector for collector in collectors}
        self.default_limit = default_limit

    @contextmanager
    def capture(self) -> Iterator[CaptureState]:
        """Open a capture scope for one request."""
        state = CaptureState(token=generate_token())
        reset_token = _capture.set(state)
        try:
            yield state
        finally:
            _capture.reset(reset_token)

    def disable(self) -> None:
        """Stop capturing the current request; other requests are unaffected."""
        state = _capture.get()
        if state is not None and state.enabled:
            state.enabled = False
            logger.debug(f"Profiler capture disabled for token {state.token}")

    def is_capturing(self) -> bool:
        state = _capture.get()
        return state is not None and state.enabled

    def collect(self, exchange: Exchange) -> Profile:
        profile = Profile(
            token=exchange.token,
            ip=exchange.ip,
            method=exchange.method,
            url=exchange.url,
            time=exchange.start_time,
            status_code=exchange.status_code,
        )
        for collector in self._collectors.values():
            try:
                profile.add_collector(collector.name, collector.collect(exchange))
            except Exception as e:
                logger.error(
                    f"Collector '{collector.name}' failed for {exchange.token}: {e}",
                    exc_info=True,
                )
        return profile

    def load_profile(self, token: str) -> Optional[Profile]:
        return self.storage.read(token)

    def save_profile(self, profile: Profile) -> bool:
        return self.storage.write(profile)

    def purge(self) -> None:
        self.storage.purge()

    def _resolve_limit(self, limit: Any) -> int:
        try:
            value = int(limit)
        except (TypeError, ValueError):
            return self.default_limit
        return value if value > 0 else self.default_limit

    def find(
        self,
        ip: Optional[str],
        url: Optional[str],
        limit: Any,
        method: Optional[str],
    ) -> List[IndexEntry]:
        return self.storage.find(ip, url, self._resolve_limit(limit), method)

    def export(self, profile: Profile) -> bytes:
        return base64.b64encode(orjson.dumps(profile.to_dict()))

    def decode(self, data: bytes | str) -> Profile:
        """
        Decode data produced by :meth:`export`.

        Raises:
            ProfileImportError: If the data is not a valid export
        """
        if isinstance(data, str):
            data = data.encode("ascii", errors="replace")
        try:
            payload = orjson.loads(base64.b64decode(data.strip(), validate=True))
            if not isinstance(payload, dict):
                raise ProfileImportError("Exported profile must be an object")
            return Profile.from_dict(payload)
        except (binascii.Error, orjson.JSONDecodeError, ValidationError) as exc:
            raise ProfileImportError(f"Invalid profile data: {exc}") from exc

    def import_profile(self, data: bytes | str) -> Optional[Profile]:
        """Store an exported profile; returns None when the token already exists."""
        profile = self.decode(data)
        if self.storage.read(profile.token) is not None:
            logger.info(f"Profile {profile.token} already exists, skipping import")
            return None

        self.storage.write(profile)
        logger.info(f"Imported profile {profile.token}")
        return profile
