"""Panel loading and registry management."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from webprofiler.panels.models import PanelDefinition

logger = logging.getLogger(__name__)


class PanelRegistry:
    """Registry for the panels the profiler knows how to display."""

    def __init__(self) -> None:
        self._panels: Dict[str, PanelDefinition] = {}
        self._loaded = False

    def load_from_file(self, panels_file: str | Path) -> None:
        """
        Load panel definitions from a YAML file.

        Args:
            panels_file: Path to a YAML file with a top-level ``panels`` list

        Raises:
            yaml.YAMLError: If the file is not valid YAML
            ValidationError: If a panel fails validation
        """
        panels_path = Path(panels_file)
        if not panels_path.is_file():
            logger.warning(f"Panels file not found: {panels_file}")
            return

        try:
            with open(panels_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"YAML parse error in {panels_path}: {e}")
            raise

        loaded = []
        for entry in data.get("panels") or []:
            try:
                panel = PanelDefinition.model_validate(entry)
            except ValidationError as e:
                logger.error(f"Validation error in {panels_path}: {e}")
                raise
            self.register(panel)
            loaded.append(panel.name)

        self._loaded = True
        if loaded:
            logger.info(f"Panels loaded: {', '.join(loaded)}")
        else:
            logger.info("No panels loaded")

    def register(self, panel: PanelDefinition) -> None:
        self._panels[panel.name] = panel

    def get(self, name: str) -> Optional[PanelDefinition]:
        return self._panels.get(name)

    def list_panels(self) -> List[PanelDefinition]:
        """Panels in display order: priority descending, then registration order."""
        return sorted(self._panels.values(), key=lambda p: -p.priority)

    def templates(self) -> List[Tuple[str, str]]:
        return [(panel.name, panel.template) for panel in self.list_panels()]

    def is_loaded(self) -> bool:
        return self._loaded

    def clear(self) -> None:
        self._panels.clear()
        self._loaded = False


def load_panel_registry(panels_file: str | Path) -> PanelRegistry:
    registry = PanelRegistry()
    registry.load_from_file(panels_file)
    return registry
