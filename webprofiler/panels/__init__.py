"""Panel registry for the profiler UI."""

from webprofiler.panels.loader import PanelRegistry, load_panel_registry
from webprofiler.panels.models import PanelDefinition

__all__ = ["PanelDefinition", "PanelRegistry", "load_panel_registry"]
