from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable
from uuid import uuid4

from .engine.models import VariableDefinition
from .errors import PromptlibError

SCHEMA_VERSION = 2

PLATFORMS = (
    "CHATGPT",
    "CLAUDE",
    "GEMINI",
    "COPILOT",
    "MIDJOURNEY",
    "STABLE_DIFFUSION",
    "OTHER",
)
DEFAULT_PLATFORM = "OTHER"
MAX_TAGS = 10


def normalize_platform(platform: str | None) -> str:
    """Upper-case a platform name and check it is one we know about."""
    if not platform:
        return DEFAULT_PLATFORM
    value = platform.strip().upper().replace("-", "_").replace(" ", "_")
    if value not in PLATFORMS:
        raise PromptlibError.invalid_platform(platform, PLATFORMS)
    return value


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip tags, drop blanks and repeats (first spelling wins), cap the count."""
    result: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in result:
            result.append(tag)
    if len(result) > MAX_TAGS:
        raise PromptlibError.too_many_tags(len(result), MAX_TAGS)
    return result


@dataclass
class Prompt:
    name: str
    content: str
    description: str = ""
    category: str = "general"
    variables: list[VariableDefinition] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    platform: str = DEFAULT_PLATFORM
    favorite: bool = False
    forked_from: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    copy_count: int = 0
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    updated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    record_type: str = "prompt"
    schema_version: int = SCHEMA_VERSION

    @property
    def variable_names(self) -> list[str]:
        return [v.name for v in self.variables]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "description": self.description,
            "category": self.category,
            "variables": [v.to_dict() for v in self.variables],
            "tags": self.tags,
            "platform": self.platform,
            "favorite": self.favorite,
            "forked_from": self.forked_from,
            "copy_count": self.copy_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "record_type": self.record_type,
            "schema_version": self.schema_version,
        }
