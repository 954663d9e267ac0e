from __future__ import annotations

from typing import Iterator

from .models import VariableReference

OPEN = "{{"
CLOSE = "}}"


def scan_placeholders(template: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` spans of ``{{...}}`` placeholders, left to right.

    A placeholder closes at the first ``}`` after its ``{{``, which must begin
    a ``}}``; names never contain ``}``. When that ``}`` is not part of a
    ``}}``, every opener before it fails the same way, so the scan resumes
    after it. Each character is visited a bounded number of times.
    """
    pos = 0
    while True:
        start = template.find(OPEN, pos)
        if start == -1:
            return
        brace = template.find("}", start + len(OPEN))
        if brace == -1:
            return
        if template.startswith(CLOSE, brace):
            end = brace + len(CLOSE)
            yield start, end
            pos = end
        else:
            pos = brace + 1


def placeholder_name(template: str, start: int, end: int) -> str:
    return template[start + len(OPEN):end - len(CLOSE)].strip()


def extract_variables(template: str) -> list[VariableReference]:
    """Return every placeholder in the template, left to right, repeats included."""
    return [
        VariableReference(
            name=placeholder_name(template, start, end),
            start=start,
            length=end - start,
            text=template[start:end],
        )
        for start, end in scan_placeholders(template)
    ]


def unique_names(template: str) -> list[str]:
    """Extract unique variable names from a template string, in order of first appearance."""
    seen: set[str] = set()
    result: list[str] = []
    for start, end in scan_placeholders(template):
        name = placeholder_name(template, start, end)
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result
