"""Panel definition models."""

import re

from pydantic import BaseModel, Field, field_validator


class PanelDefinition(BaseModel):
    """One panel of the profiler UI, backed by the collector of the same name."""

    name: str = Field(..., description="Collector name shown by this panel")
    template: str = Field(..., description="Template defining toolbar/menu/panel blocks")
    title: str = Field(default="", description="Human-readable title")
    priority: int = Field(default=0, description="Higher priorities are listed first")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.match(r"^[a-z][a-z0-9_]*$", v):
            raise ValueError(f"Invalid panel name: {v}")
        return v

    @field_validator("template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        if not v.endswith(".html"):
            raise ValueError(f"Panel template must be an .html file: {v}")
        return v
