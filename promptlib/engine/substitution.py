from __future__ import annotations

from .extractor import placeholder_name, scan_placeholders, unique_names
from .models import VariableValues


def substitute(template: str, values: VariableValues) -> str:
    """Replace every placeholder that has a non-empty value; leave the rest as written.

    Done in one pass over the template with names looked up in ``values``, so
    characters such as ``.`` or ``*`` in a name are plain text. Substituted
    text is never rescanned: a value containing ``{{other}}`` comes out
    verbatim.
    """
    if not values:
        return template

    parts: list[str] = []
    pos = 0
    for start, end in scan_placeholders(template):
        value = values.get(placeholder_name(template, start, end))
        if value:
            parts.append(template[pos:start])
            parts.append(value)
            pos = end
    parts.append(template[pos:])
    return "".join(parts)


def unresolved_variables(template: str, values: VariableValues) -> list[str]:
    """Return variable names in the template that have no non-empty value."""
    return [name for name in unique_names(template) if not values.get(name)]
