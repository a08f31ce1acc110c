from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_PANELS_FILE = Path(__file__).parent / "resources" / "panels.yaml"

ToolbarPosition = Literal["top", "bottom", "normal"]


class Settings(BaseSettings):
    """
    Profiler settings, overridable through WEBPROFILER_* environment variables.
    """

    app_name: str = "Web Profiler"
    environment: str = Field("local", validation_alias="ENVIRONMENT")
    log_level: str = "INFO"

    # Capture
    profiler_enabled: bool = True
    storage_dsn: str = Field("file:var/profiler", description="file:<dir> or memory:")

    # Web UI
    profiler_routes_enabled: bool = True
    profiler_path: str = "/_profiler"
    toolbar_path: str = "/_wdt"
    toolbar_position: ToolbarPosition = "normal"
    search_default_limit: int = Field(10, ge=1, le=1000)

    # Session and flashes
    session_secret_key: Optional[str] = None
    flash_auto_expire: bool = False

    # Templates and panels
    panels_file: Path = DEFAULT_PANELS_FILE
    template_dirs: List[str] = Field(default_factory=list)

    @field_validator("profiler_path", "toolbar_path")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        v = "/" + v.strip("/")
        if v == "/":
            raise ValueError("Profiler and toolbar paths need a non-root prefix")
        return v

    class Config:
        env_prefix = "WEBPROFILER_"
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
