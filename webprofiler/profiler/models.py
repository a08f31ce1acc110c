"""Profile data captured for one past request."""

from __future__ import annotations

import time as _time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from webprofiler.exceptions import ProfilerError


CollectorData = Dict[str, Any]

MAX_TOKEN_LENGTH = 64


def is_valid_token(token: Optional[str]) -> bool:
    """Tokens are used as file names, so only word characters and dashes pass."""
    if not token or len(token) > MAX_TOKEN_LENGTH or token in {".", ".."}:
        return False
    return all(ch.isalnum() or ch in "-_" for ch in token)


@dataclass(slots=True)
class Profile:
    token: str
    ip: Optional[str] = None
    method: Optional[str] = None
    url: Optional[str] = None
    time: float = field(default_factory=_time.time)
    status_code: Optional[int] = None
    collectors: Dict[str, CollectorData] = field(default_factory=dict)

    def has_collector(self, name: str) -> bool:
        return name in self.collectors

    def get_collector(self, name: str) -> CollectorData:
        if name not in self.collectors:
            raise ProfilerError(f'Collector "{name}" does not exist.')
        return self.collectors[name]

    def add_collector(self, name: str, data: CollectorData) -> None:
        self.collectors[name] = data

    def index_entry(self) -> Dict[str, Any]:
        """Row stored in a storage index and returned by searches."""
        return {
            "token": self.token,
            "ip": self.ip,
            "method": self.method,
            "url": self.url,
            "time": self.time,
            "status_code": self.status_code,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.index_entry()
        data["collectors"] = self.collectors
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        document = ProfileDocument.model_validate(data)
        return cls(
            token=document.token,
            ip=document.ip,
            method=document.method,
            url=document.url,
            time=document.time,
            status_code=document.status_code,
            collectors=dict(document.collectors),
        )


class ProfileDocument(BaseModel):
    """Validated shape of a serialized profile."""

    token: str = Field(..., min_length=1, max_length=MAX_TOKEN_LENGTH)
    ip: Optional[str] = None
    method: Optional[str] = None
    url: Optional[str] = None
    time: float = 0.0
    status_code: Optional[int] = None
    collectors: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        if not is_valid_token(v):
            raise ValueError(f"Invalid token: {v!r}")
        return v
