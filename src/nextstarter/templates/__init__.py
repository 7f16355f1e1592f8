"""Template management for nextstarter."""

from .fetch import GitTemplateFetcher, TemplateFetcher
from .manager import ScaffoldResult, TemplateManager
from .manifest import additional_packages, read_template_dependencies
from .overlay import OverlayOptions, OverlayReport, TemplateOverlay

__all__ = [
    "GitTemplateFetcher",
    "TemplateFetcher",
    "ScaffoldResult",
    "TemplateManager",
    "additional_packages",
    "read_template_dependencies",
    "OverlayOptions",
    "OverlayReport",
    "TemplateOverlay",
]
