"""Keep a prompt's variable definitions in step with its text."""

from __future__ import annotations

from typing import Iterable

from .extractor import unique_names
from .models import VariableDefinition


def sync_variables(
    existing: Iterable[VariableDefinition],
    template: str,
) -> list[VariableDefinition]:
    """Recompute the definition list for a template.

    Definitions whose name still appears are carried over untouched, new
    names get blank metadata, and names that disappeared are dropped along
    with their description and default. The result follows the order of
    first appearance in the template.

    Args:
        existing: Definitions currently held for the prompt.
        template: The prompt text.

    Returns:
        A new list; ``existing`` is not modified.
    """
    lookup: dict[str, VariableDefinition] = {}
    for definition in existing:
        lookup.setdefault(definition.name, definition)

    result: list[VariableDefinition] = []
    for name in unique_names(template):
        found = lookup.get(name)
        if found is not None:
            result.append(found)
        else:
            result.append(VariableDefinition(name=name))
    return result


def variables_changed(
    current: list[VariableDefinition],
    updated: list[VariableDefinition],
) -> bool:
    """True when the two lists differ in length or in the name at any position.

    Only names are compared, so a reorder counts as a change while metadata
    edits do not.
    """
    if len(current) != len(updated):
        return True
    return any(a.name != b.name for a, b in zip(current, updated))
