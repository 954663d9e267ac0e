"""Preview rendering: split a template into literal and substituted segments."""

from __future__ import annotations

from typing import Iterable

from .extractor import extract_variables, unique_names
from .models import Resolver, Segment, VariableDefinition, VariableValues


def _defaults(definitions: Iterable[VariableDefinition]) -> dict[str, str]:
    defaults: dict[str, str] = {}
    for definition in definitions:
        if definition.default_value and definition.name not in defaults:
            defaults[definition.name] = definition.default_value
    return defaults


def default_merge(
    values: VariableValues,
    definitions: Iterable[VariableDefinition],
) -> Resolver:
    """Resolver for viewing a saved prompt: explicit value, then default."""
    defaults = _defaults(definitions)

    def resolve(name: str) -> str | None:
        return values.get(name) or defaults.get(name)

    return resolve


def preview_merge(definitions: Iterable[VariableDefinition]) -> Resolver:
    """Resolver for authoring, before any values exist: defaults only."""
    defaults = _defaults(definitions)

    def resolve(name: str) -> str | None:
        return defaults.get(name)

    return resolve


def _unresolved(name: str) -> None:
    return None


def render_preview(template: str, resolve: Resolver) -> list[Segment]:
    """Render a template as an ordered list of segments.

    Each placeholder becomes a substituted segment holding ``resolve(name)``.
    A placeholder the resolver leaves empty keeps its own bracket text, so
    joining the segments always gives the displayed string, never a string
    with holes in it.
    """
    segments: list[Segment] = []
    position = 0
    for ref in extract_variables(template):
        if ref.start > position:
            segments.append(Segment(template[position:ref.start]))
        value = resolve(ref.name)
        segments.append(Segment(value or ref.text, True, ref.name))
        position = ref.end
    if position < len(template):
        segments.append(Segment(template[position:]))
    return segments


def highlight_variables(template: str) -> list[Segment]:
    """Segments of the raw template with every placeholder marked, nothing resolved."""
    return render_preview(template, _unresolved)


def preview_text(template: str, resolve: Resolver) -> str:
    return "".join(segment.text for segment in render_preview(template, resolve))


def resolved_values(template: str, resolve: Resolver) -> dict[str, str]:
    """The value map that makes ``substitute`` agree with ``render_preview``."""
    values: dict[str, str] = {}
    for name in unique_names(template):
        value = resolve(name)
        if value:
            values[name] = value
    return values
