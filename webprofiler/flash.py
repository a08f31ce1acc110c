"""Session-backed flash messages."""

from __future__ import annotations

from typing import Any, Dict, List, MutableMapping, Optional

from starlette.requests import Request

Flashes = Dict[str, List[Any]]


class FlashBag:
    """Messages stay in the session until something reads them."""

    SESSION_KEY = "_flashes"

    def __init__(self, session: MutableMapping[str, Any]) -> None:
        self.session = session

    def initialize(self) -> None:
        pass

    def _load(self) -> Flashes:
        return dict(self.session.get(self.SESSION_KEY) or {})

    def _store(self, flashes: Flashes) -> None:
        self.session[self.SESSION_KEY] = flashes

    def add(self, type: str, message: Any) -> None:
        flashes = self._load()
        flashes.setdefault(type, []).append(message)
        self._store(flashes)

    def peek(self, type: str, default: Optional[List[Any]] = None) -> List[Any]:
        return list(self._load().get(type, default or []))

    def peek_all(self) -> Flashes:
        return self._load()

    def get(self, type: str, default: Optional[List[Any]] = None) -> List[Any]:
        flashes = self._load()
        messages = flashes.pop(type, default or [])
        self._store(flashes)
        return messages

    def get_all(self) -> Flashes:
        flashes = self._load()
        self._store({})
        return flashes

    def set_all(self, messages: Flashes) -> None:
        self._store(dict(messages))

    def has(self, type: str) -> bool:
        return bool(self._load().get(type))


class AutoExpireFlashBag(FlashBag):
    """
    Messages added during one request are displayable during the next one
    and then expire whether or not they were read.

    The session holds two partitions: ``new`` (added this request) and
    ``display`` (added by the previous request).
    """

    SESSION_KEY = "_flashes_auto"

    def initialize(self) -> None:
        data = self.session.get(self.SESSION_KEY) or {}
        self.session[self.SESSION_KEY] = {"display": data.get("new") or {}, "new": {}}

    def _partitions(self) -> Dict[str, Flashes]:
        data = self.session.get(self.SESSION_KEY) or {}
        return {
            "display": dict(data.get("display") or {}),
            "new": dict(data.get("new") or {}),
        }

    def _load(self) -> Flashes:
        return self._partitions()["display"]

    def _store(self, flashes: Flashes) -> None:
        partitions = self._partitions()
        partitions["display"] = flashes
        self.session[self.SESSION_KEY] = partitions

    def add(self, type: str, message: Any) -> None:
        partitions = self._partitions()
        partitions["new"].setdefault(type, []).append(message)
        self.session[self.SESSION_KEY] = partitions

    def set_all(self, messages: Flashes) -> None:
        partitions = self._partitions()
        partitions["new"] = dict(messages)
        self.session[self.SESSION_KEY] = partitions


def get_session(request: Request) -> Optional[MutableMapping[str, Any]]:
    """The request's session, or None when no session middleware is installed."""
    if "session" not in request.scope:
        return None
    return request.session


def get_flash_bag(request: Request, auto_expire: bool = False) -> Optional[FlashBag]:
    """Flash bag for this request, initialized once per request."""
    bag = getattr(request.state, "flash_bag", None)
    if bag is not None:
        return bag

    session = get_session(request)
    if session is None:
        return None

    bag = AutoExpireFlashBag(session) if auto_expire else FlashBag(session)
    bag.initialize()
    request.state.flash_bag = bag
    return bag
