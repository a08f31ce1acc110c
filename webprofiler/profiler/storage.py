"""Persistence backends for captured profiles."""

from __future__ import annotations

import csv
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
from pydantic import ValidationError

from webprofiler.exceptions import ConfigurationError, StorageError
from webprofiler.profiler.models import Profile, is_valid_token

logger = logging.getLogger(__name__)

IndexEntry = Dict[str, Any]


class ProfilerStorage(ABC):
    """Stores profiles and answers token searches, newest first."""

    @abstractmethod
    def read(self, token: str) -> Optional[Profile]:
        """Return the profile stored under ``token`` or None."""

    @abstractmethod
    def write(self, profile: Profile) -> bool:
        """Persist ``profile``; returns True on success."""

    @abstractmethod
    def find(
        self,
        ip: Optional[str],
        url: Optional[str],
        limit: int,
        method: Optional[str],
    ) -> List[IndexEntry]:
        """Return at most ``limit`` index entries matching the filter."""

    @abstractmethod
    def purge(self) -> None:
        """Delete every stored profile."""

    @staticmethod
    def matches(
        entry: IndexEntry,
        ip: Optional[str],
        url: Optional[str],
        method: Optional[str],
    ) -> bool:
        if ip and ip not in (entry.get("ip") or ""):
            return False
        if url and url not in (entry.get("url") or ""):
            return False
        if method and method.upper() != (entry.get("method") or "").upper():
            return False
        return True


class MemoryProfilerStorage(ProfilerStorage):
    """
    Process-local storage, used for tests and short-lived dev servers.

    When ``max_profiles`` is set the oldest profiles are dropped once the
    store grows past it.
    """

    def __init__(self, max_profiles: Optional[int] = None) -> None:
        if max_profiles is not None and max_profiles < 1:
            raise ConfigurationError("max_profiles must be a positive integer")
        self.max_profiles = max_profiles
        self._profiles: Dict[str, bytes] = {}

    def read(self, token: str) -> Optional[Profile]:
        raw = self._profiles.get(token)
        if raw is None:
            return None
        return Profile.from_dict(orjson.loads(raw))

    def write(self, profile: Profile) -> bool:
        self._profiles[profile.token] = orjson.dumps(profile.to_dict())
        if self.max_profiles is not None:
            while len(self._profiles) > self.max_profiles:
                oldest = next(iter(self._profiles))
                del self._profiles[oldest]
                logger.debug(f"Evicted profile {oldest} from memory storage")
        return True

    def find(self, ip, url, limit, method) -> List[IndexEntry]:
        result: List[IndexEntry] = []
        for raw in reversed(list(self._profiles.values())):
            if len(result) >= limit:
                break
            entry = Profile.from_dict(orjson.loads(raw)).index_entry()
            if self.matches(entry, ip, url, method):
                result.append(entry)
        return result

    def purge(self) -> None:
        self._profiles.clear()

    def __len__(self) -> int:
        return len(self._profiles)


class FileProfilerStorage(ProfilerStorage):
    """
    Stores one JSON file per profile plus an append-only CSV index.

    Profiles live under ``<folder>/<last 2 chars>/<2 chars before>/<token>``
    so no single directory grows too large.
    """

    INDEX_FILE = "index.csv"
    INDEX_FIELDS = ("token", "ip", "method", "url", "time", "status_code")

    def __init__(self, folder: str | Path) -> None:
        self.folder = Path(folder)
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Unable to create the storage directory {self.folder}: {exc}"
            ) from exc

    @property
    def index_path(self) -> Path:
        return self.folder / self.INDEX_FILE

    def _profile_path(self, token: str) -> Path:
        return self.folder / token[-2:] / token[-4:-2] / token

    def read(self, token: str) -> Optional[Profile]:
        if not is_valid_token(token):
            return None

        path = self._profile_path(token)
        if not path.is_file():
            return None

        try:
            return Profile.from_dict(orjson.loads(path.read_bytes()))
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring corrupt profile file {path}: {e}")
            return None

    def write(self, profile: Profile) -> bool:
        if not is_valid_token(profile.token):
            raise StorageError(f"Refusing to store invalid token {profile.token!r}")

        path = self._profile_path(profile.token)
        is_new = not path.exists()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(orjson.dumps(profile.to_dict()))
            if is_new:
                with open(self.index_path, "a", encoding="utf-8", newline="") as f:
                    entry = profile.index_entry()
                    csv.writer(f).writerow(
                        ["" if entry[k] is None else entry[k] for k in self.INDEX_FIELDS]
                    )
        except OSError as e:
            logger.error(f"Unable to write profile {profile.token}: {e}")
            raise StorageError(str(e)) from e
        return True

    def _read_index(self) -> List[IndexEntry]:
        if not self.index_path.is_file():
            return []

        entries = []
        with open(self.index_path, "r", encoding="utf-8", newline="") as f:
            for row in csv.reader(f):
                if len(row) != len(self.INDEX_FIELDS):
                    continue
                token, ip, method, url, time, status_code = row
                entries.append(
                    {
                        "token": token,
                        "ip": ip or None,
                        "method": method or None,
                        "url": url or None,
                        "time": float(time) if time else 0.0,
                        "status_code": int(status_code) if status_code else None,
                    }
                )
        return entries

    def find(self, ip, url, limit, method) -> List[IndexEntry]:
        result: List[IndexEntry] = []
        for entry in reversed(self._read_index()):
            if len(result) >= limit:
                break
            if self.matches(entry, ip, url, method):
                result.append(entry)
        return result

    def purge(self) -> None:
        for child in self.folder.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        logger.info(f"Purged profiler storage at {self.folder}")


def create_storage(dsn: str) -> ProfilerStorage:
    """
    Build a storage backend from a DSN.

    Args:
        dsn: ``file:<directory>``, ``memory:`` or ``memory:<max profiles>``

    Raises:
        ConfigurationError: If the DSN scheme is not supported
    """
    scheme, _, location = dsn.partition(":")
    if scheme == "memory":
        if not location:
            return MemoryProfilerStorage()
        try:
            max_profiles = int(location)
        except ValueError:
            raise ConfigurationError(f"Invalid memory storage size in DSN: {dsn}") from None
        return MemoryProfilerStorage(max_profiles)
    if scheme == "file":
        if not location:
            raise ConfigurationError("The file storage DSN needs a directory")
        return FileProfilerStorage(location)
    raise ConfigurationError(f"Unsupported profiler storage DSN: {dsn}")
