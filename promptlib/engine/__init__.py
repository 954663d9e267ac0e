"""Template variable engine: pure functions over ``{{variable}}`` prompt text."""

from .extractor import extract_variables, scan_placeholders, unique_names
from .models import Resolver, Segment, VariableDefinition, VariableReference
from .renderer import (
    default_merge,
    highlight_variables,
    preview_merge,
    preview_text,
    render_preview,
    resolved_values,
)
from .substitution import substitute, unresolved_variables
from .synchronizer import sync_variables, variables_changed

__all__ = [
    "Resolver",
    "Segment",
    "VariableDefinition",
    "VariableReference",
    "scan_placeholders",
    "extract_variables",
    "unique_names",
    "sync_variables",
    "variables_changed",
    "render_preview",
    "highlight_variables",
    "preview_text",
    "resolved_values",
    "default_merge",
    "preview_merge",
    "substitute",
    "unresolved_variables",
]
