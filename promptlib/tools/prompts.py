import json
import logging
import re

from ..draft import PromptDraft
from ..engine import VariableDefinition, sync_variables
from ..errors import PromptlibError
from ..models import DEFAULT_PLATFORM, Prompt
from ..storage import Storage

NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")

logger = logging.getLogger(__name__)


def validate_name(name: str) -> None:
    if not NAME_PATTERN.match(name):
        raise PromptlibError.invalid_name(name)


def _definitions(variables: list[dict] | None) -> list[VariableDefinition]:
    return [VariableDefinition.from_dict(v) for v in variables or []]


def _fill_draft(prompt: Prompt, values: dict[str, str] | None) -> PromptDraft:
    draft = PromptDraft.from_prompt(prompt)
    for key, value in (values or {}).items():
        draft.set_value(key, value)
    return draft


def register_tools(mcp, storage: Storage) -> None:
    @mcp.tool()
    def prompt_save(
        name: str,
        content: str,
        description: str = "",
        category: str = "general",
        variables: list[dict] | None = None,
        tags: list[str] | None = None,
        platform: str = DEFAULT_PLATFORM,
    ) -> str:
        """Save a new prompt template. Variables use {{variable name}} syntax.

        ``variables`` may carry a description and defaultValue per name; names
        not present in the content are dropped. ``platform`` is one of
        CHATGPT, CLAUDE, GEMINI, COPILOT, MIDJOURNEY, STABLE_DIFFUSION, OTHER.
        """
        validate_name(name)
        definitions = sync_variables(_definitions(variables), content)
        prompt = Prompt(
            name=name,
            content=content,
            description=description,
            category=category,
            variables=definitions,
            tags=tags or [],
            platform=platform,
        )
        storage.save_prompt(prompt)
        result = {
            "status": "saved",
            "name": prompt.name,
            "variables": [v.to_dict() for v in prompt.variables],
            "category": prompt.category,
            "tags": prompt.tags,
            "platform": prompt.platform,
        }
        return json.dumps(result)

    @mcp.tool()
    def prompt_get(name: str) -> str:
        """Get a prompt template by name."""
        prompt = storage.get_prompt(name)
        return json.dumps(prompt.to_dict())

    @mcp.tool()
    def prompt_update(
        name: str,
        content: str | None = None,
        description: str | None = None,
        category: str | None = None,
        variables: list[dict] | None = None,
        tags: list[str] | None = None,
        platform: str | None = None,
    ) -> str:
        """Update a prompt. Variable metadata is kept for names still in the content."""
        prompt = storage.update_prompt(
            name,
            content=content,
            description=description,
            category=category,
            variables=_definitions(variables) if variables is not None else None,
            tags=tags,
            platform=platform,
        )
        result = {
            "status": "updated",
            "name": prompt.name,
            "variables": [v.to_dict() for v in prompt.variables],
            "tags": prompt.tags,
            "platform": prompt.platform,
        }
        return json.dumps(result)

    @mcp.tool()
    def prompt_variables(content: str, variables: list[dict] | None = None) -> str:
        """Show which variables a piece of prompt text defines, without saving it."""
        definitions = sync_variables(_definitions(variables), content)
        return json.dumps([v.to_dict() for v in definitions])

    @mcp.tool()
    def prompt_preview(name: str, values: dict[str, str] | None = None) -> str:
        """Render a prompt as segments, marking which parts came from variables."""
        draft = _fill_draft(storage.get_prompt(name), values)
        result = {
            "name": name,
            "segments": [s.to_dict() for s in draft.rendered()],
            "text": draft.rendered_text(),
            "missing": draft.missing(),
        }
        return json.dumps(result)

    @mcp.tool()
    def prompt_fill(
        name: str,
        values: dict[str, str] | None = None,
        strict: bool = False,
    ) -> str:
        """Fill in a prompt's variables and return the text. Increments copy count.

        Unfilled variables without a default keep their {{placeholder}} text
        unless ``strict`` is set, in which case they are an error.
        """
        draft = _fill_draft(storage.get_prompt(name), values)
        if strict:
            missing = draft.missing()
            if missing:
                raise PromptlibError.missing_variables(missing)

        filled = draft.filled_text()
        prompt = storage.record_copy(name)
        logger.info("Filled prompt %s (copy #%d)", name, prompt.copy_count)

        result = {
            "name": prompt.name,
            "filled": filled,
            "copy_count": prompt.copy_count,
        }
        return json.dumps(result)

    @mcp.tool()
    def prompt_list(
        category: str | None = None,
        tags: list[str] | None = None,
        platform: str | None = None,
        favorites_only: bool = False,
    ) -> str:
        """List prompts, optionally filtered by category, tags (any match), platform or favorites."""
        prompts = storage.list_prompts(
            category, tags=tags, platform=platform, favorites_only=favorites_only
        )
        result = [
            {
                "name": p.name,
                "category": p.category,
                "variables": p.variable_names,
                "tags": p.tags,
                "platform": p.platform,
                "favorite": p.favorite,
                "copy_count": p.copy_count,
            }
            for p in prompts
        ]
        return json.dumps(result)

    @mcp.tool()
    def prompt_recent(limit: int = 10) -> str:
        """List recently copied/updated prompts."""
        prompts = storage.recent_prompts(limit)
        result = [
            {
                "name": p.name,
                "category": p.category,
                "copy_count": p.copy_count,
                "updated_at": p.updated_at,
            }
            for p in prompts
        ]
        return json.dumps(result)

    @mcp.tool()
    def prompt_delete(name: str) -> str:
        """Delete a prompt by name."""
        prompt = storage.delete_prompt(name)
        result = {"status": "deleted", "name": prompt.name}
        return json.dumps(result)

    @mcp.tool()
    def prompt_favorite(name: str, favorite: bool = True) -> str:
        """Star a prompt, or unstar it with favorite=False."""
        prompt = storage.set_favorite(name, favorite)
        result = {"name": prompt.name, "favorite": prompt.favorite}
        return json.dumps(result)

    @mcp.tool()
    def prompt_fork(source: str, new_name: str | None = None) -> str:
        """Copy a prompt under a new name (default: <source>-remix). Counts as a copy of the source."""
        new_name = new_name or f"{source}-remix"
        validate_name(new_name)
        fork = storage.fork_prompt(source, new_name)
        result = {
            "status": "forked",
            "name": fork.name,
            "source": source,
            "variables": [v.to_dict() for v in fork.variables],
        }
        return json.dumps(result)
