"""Editor state for a prompt being written or filled in."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from .engine import (
    Segment,
    VariableDefinition,
    default_merge,
    preview_merge,
    preview_text,
    render_preview,
    resolved_values,
    substitute,
    sync_variables,
    unresolved_variables,
    variables_changed,
)
from .errors import PromptlibError

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class PromptDraft:
    """Content, variable definitions, and fill-in values held by one editor.

    All derived state goes through the engine functions. ``variables`` is
    only reassigned when the set or order of names actually changes.
    """

    content: str = ""
    variables: list[VariableDefinition] = field(default_factory=list)
    values: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.variables = list(self.variables)
        self.values = dict(self.values)
        self.sync()

    @classmethod
    def from_prompt(cls, prompt) -> PromptDraft:
        return cls(content=prompt.content, variables=prompt.variables)

    def sync(self) -> bool:
        updated = sync_variables(self.variables, self.content)
        if not variables_changed(self.variables, updated):
            return False
        logger.debug(
            "variables changed: %s -> %s",
            [v.name for v in self.variables],
            [v.name for v in updated],
        )
        self.variables = updated
        return True

    def set_content(self, text: str) -> bool:
        """Replace the text and re-sync definitions. Returns True if they changed."""
        self.content = text
        return self.sync()

    def update_variable(
        self,
        name: str,
        description=_UNSET,
        default_value=_UNSET,
    ) -> VariableDefinition:
        """Edit one variable's metadata. An empty string clears the field."""
        for i, definition in enumerate(self.variables):
            if definition.name != name:
                continue
            changes = {}
            if description is not _UNSET:
                changes["description"] = description or None
            if default_value is not _UNSET:
                changes["default_value"] = default_value or None
            self.variables[i] = replace(definition, **changes)
            return self.variables[i]
        raise PromptlibError.variable_not_found(name)

    def set_value(self, name: str, value: str) -> None:
        self.values[name] = value

    def preview(self) -> list[Segment]:
        """Authoring preview: defaults only."""
        return render_preview(self.content, preview_merge(self.variables))

    def rendered(self) -> list[Segment]:
        """Viewing preview: entered values, falling back to defaults."""
        return render_preview(
            self.content, default_merge(self.values, self.variables)
        )

    def rendered_text(self) -> str:
        return preview_text(
            self.content, default_merge(self.values, self.variables)
        )

    def filled_text(self) -> str:
        resolve = default_merge(self.values, self.variables)
        return substitute(self.content, resolved_values(self.content, resolve))

    def missing(self) -> list[str]:
        resolve = default_merge(self.values, self.variables)
        return unresolved_variables(
            self.content, resolved_values(self.content, resolve)
        )
