# webprofiler/api/schemas.py
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchQueryModel(BaseModel):
    """Profile search filter as submitted by the search bar."""

    model_config = ConfigDict(extra="ignore")

    ip: Optional[str] = Field(default=None, description="IP substring")
    method: Optional[str] = Field(default=None, description="HTTP method")
    url: Optional[str] = Field(default=None, description="URL substring")
    limit: Optional[int] = Field(default=None, description="Maximum result count")
    token: Optional[str] = Field(default=None, description="Jump straight to a token")

    @field_validator("ip", "method", "url", "token", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("limit", mode="before")
    @classmethod
    def normalize_limit(cls, value: Any) -> Optional[int]:
        # Unparseable limits fall back to the store default instead of a 422
        try:
            limit = int(value)
        except (TypeError, ValueError):
            return None
        return limit if limit > 0 else None
