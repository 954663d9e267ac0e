from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

# Maps a variable name to the text shown in its place; None means unresolved.
Resolver = Callable[[str], str | None]

VariableValues = Mapping[str, str | None]


@dataclass(frozen=True)
class VariableReference:
    """One ``{{name}}`` occurrence inside a template."""

    name: str
    start: int
    length: int
    text: str  # the raw span, delimiters included

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass
class VariableDefinition:
    """Metadata stored with a prompt for one of its variables."""

    name: str
    description: str | None = None
    default_value: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "defaultValue": self.default_value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> VariableDefinition:
        default = data.get("defaultValue", data.get("default_value"))
        return cls(
            name=data["name"],
            description=data.get("description"),
            default_value=default,
        )


@dataclass(frozen=True)
class Segment:
    """A piece of rendered preview text."""

    text: str
    is_substituted: bool = False
    name: str | None = None  # variable name, substituted segments only

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "is_substituted": self.is_substituted,
            "name": self.name,
        }
