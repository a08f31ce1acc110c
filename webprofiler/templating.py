"""Jinja2 rendering and panel template resolution."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

from fastapi.templating import Jinja2Templates
from jinja2 import Environment, TemplateNotFound, pass_context
from jinja2.runtime import Context
from markupsafe import Markup

from webprofiler.exceptions import ConfigurationError, PanelNotFoundError
from webprofiler.panels.loader import PanelRegistry
from webprofiler.profiler.models import Profile

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"


@pass_context
def render_block(
    context: Context, template_name: str, block_name: str, **variables: Any
) -> Markup:
    """Render a single block of another template with the caller's context."""
    template = context.environment.get_template(template_name)
    block = template.blocks.get(block_name)
    if block is None:
        return Markup("")
    block_context = template.new_context({**context.get_all(), **variables})
    return Markup("".join(block(block_context)))


def format_timestamp(value: Any) -> str:
    if not value:
        return ""
    moment = datetime.fromtimestamp(float(value), tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_bytes(value: Any) -> str:
    size = float(value or 0)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024 or unit == "GiB":
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"


class TemplateRenderer:
    """Renders named templates; user directories shadow the packaged ones."""

    def __init__(self, directories: Sequence[str | Path] = ()) -> None:
        self.templates = Jinja2Templates(directory=[*directories, TEMPLATES_DIR])
        self.environment.globals["render_block"] = render_block
        self.environment.filters["timestamp"] = format_timestamp
        self.environment.filters["bytes"] = format_bytes

    @property
    def environment(self) -> Environment:
        return self.templates.env

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        return self.environment.get_template(name).render(dict(context))

    def exists(self, name: str) -> bool:
        try:
            self.environment.get_template(name)
        except TemplateNotFound:
            return False
        return True


class TemplateManager:
    """Resolves which template displays a profile panel."""

    def __init__(self, renderer: TemplateRenderer, panels: PanelRegistry) -> None:
        self.renderer = renderer
        self.panels = panels

    def get_name(self, profile: Profile, panel: str) -> str:
        definition = self.panels.get(panel)
        if definition is None:
            raise PanelNotFoundError(
                f'Panel "{panel}" is not registered in profiler '
                f"or is not present in viewed profile.",
                panel=panel,
                token=profile.token,
            )
        return definition.template

    def get_templates(self, profile: Profile) -> Dict[str, str]:
        """Templates of every registered panel the profile has data for."""
        templates: Dict[str, str] = {}
        for name, template in self.panels.templates():
            if not profile.has_collector(name):
                continue
            if not self.renderer.exists(template):
                raise ConfigurationError(
                    f'The profiler template "{template}" for data collector '
                    f'"{name}" does not exist.'
                )
            templates[name] = template
        return templates
