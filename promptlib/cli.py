"""Promptlib CLI: manage and fill prompt templates."""

from __future__ import annotations

import logging
import platform
import subprocess
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import config
from .draft import PromptDraft
from .engine import Segment, extract_variables, highlight_variables
from .errors import PromptlibError
from .models import PLATFORMS, Prompt
from .storage import Storage
from .tools.prompts import validate_name

console = Console()
err_console = Console(stderr=True)

VARIABLE_STYLE = "bold magenta"


def _setup_logging(verbose: bool) -> None:
    """Log to a file under the promptlib home, and to stderr with --verbose."""
    logger = logging.getLogger("promptlib")
    logger.setLevel(logging.DEBUG if verbose else config.log_level())

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        log_dir = config.logs_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "promptlib.log")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if verbose:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        logger.addHandler(stream)


def _copy_to_clipboard(text: str) -> bool:
    """Put text on the system clipboard. Returns False if no tool worked."""
    system = platform.system()

    if system == "Darwin":  # macOS
        commands = [["pbcopy"]]
    elif system == "Linux":
        commands = [["wl-copy"], ["xclip", "-selection", "clipboard"]]
    elif system == "Windows":
        commands = [["clip"]]
    else:
        return False

    for cmd in commands:
        try:
            subprocess.run(
                cmd,
                input=text,
                text=True,
                capture_output=True,
                timeout=5,
                check=True,
            )
            return True
        except (subprocess.SubprocessError, OSError):
            continue
    return False


def _parse_assignments(pairs: tuple[str, ...]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise PromptlibError.invalid_assignment(pair)
        key, value = pair.split("=", 1)
        values[key.strip()] = value
    return values


def _read_content(content: str | None, file: str | None) -> str:
    if file:
        return Path(file).read_text()
    if content is not None:
        return content
    raise click.UsageError("Provide --content or --file")


def _segments_to_text(segments: list[Segment]) -> Text:
    text = Text()
    for segment in segments:
        text.append(segment.text, style=VARIABLE_STYLE if segment.is_substituted else None)
    return text


def _fail(error: PromptlibError) -> None:
    console.print(f"[red]Error:[/red] {escape(error.message)}")
    sys.exit(1)


@click.group()
@click.version_option(package_name="promptlib")
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool):
    """Promptlib CLI - prompt templates with {{variables}}."""
    _setup_logging(verbose)


@cli.command("vars")
@click.argument("text", required=False)
@click.option("--file", "-f", type=click.Path(exists=True), help="Read template from file")
def vars_(text: str | None, file: str | None):
    """List the variables a template uses."""
    template = _read_content(text, file)
    references = extract_variables(template)

    if not references:
        console.print("[yellow]No variables found.[/yellow]")
        return

    counts: dict[str, int] = {}
    for ref in references:
        counts[ref.name] = counts.get(ref.name, 0) + 1

    table = Table(title="Variables")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Uses", justify="right")
    for i, (name, count) in enumerate(counts.items(), 1):
        table.add_row(str(i), escape(name), str(count))
    console.print(table)


@cli.command()
@click.argument("name")
@click.option("--content", "-c", default=None, help="Prompt text")
@click.option("--file", "-f", type=click.Path(exists=True), help="Read prompt text from file")
@click.option("--category", default="general", help="Category")
@click.option("--description", "-d", default="", help="Short description")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.option(
    "--platform",
    type=click.Choice(PLATFORMS, case_sensitive=False),
    default="OTHER",
    help="Target model platform",
)
def save(
    name: str,
    content: str | None,
    file: str | None,
    category: str,
    description: str,
    tags: tuple[str, ...],
    platform: str,
):
    """Save a new prompt."""
    text = _read_content(content, file)
    try:
        validate_name(name)
        draft = PromptDraft(content=text)
        with Storage() as storage:
            prompt = storage.save_prompt(
                Prompt(
                    name=name,
                    content=draft.content,
                    description=description,
                    category=category,
                    variables=draft.variables,
                    tags=list(tags),
                    platform=platform,
                )
            )
    except PromptlibError as e:
        _fail(e)

    names = ", ".join(prompt.variable_names) or "none"
    console.print(f"[green]✓[/green] Saved {escape(prompt.name)} (variables: {escape(names)})")


@cli.command()
@click.argument("name")
@click.option("--content", "-c", default=None, help="New prompt text")
@click.option("--file", "-f", type=click.Path(exists=True), help="Read new prompt text from file")
def edit(name: str, content: str | None, file: str | None):
    """Replace a prompt's text, keeping metadata of surviving variables."""
    text = _read_content(content, file)
    try:
        with Storage() as storage:
            before = storage.get_prompt(name).variable_names
            prompt = storage.update_prompt(name, content=text)
    except PromptlibError as e:
        _fail(e)

    after = prompt.variable_names
    for added in [n for n in after if n not in before]:
        console.print(f"  [green]+[/green] {escape(added)}")
    for dropped in [n for n in before if n not in after]:
        console.print(f"  [red]-[/red] {escape(dropped)}")
    console.print(f"[green]✓[/green] Updated {escape(name)}")


@cli.command()
@click.argument("name")
@click.argument("variable")
@click.option("--description", "-d", default=None, help="Variable description ('' clears)")
@click.option("--default", "default_value", default=None, help="Default value ('' clears)")
def describe(name: str, variable: str, description: str | None, default_value: str | None):
    """Set a variable's description or default value."""
    changes = {}
    if description is not None:
        changes["description"] = description
    if default_value is not None:
        changes["default_value"] = default_value
    try:
        with Storage() as storage:
            draft = PromptDraft.from_prompt(storage.get_prompt(name))
            definition = draft.update_variable(variable, **changes)
            storage.update_prompt(name, variables=draft.variables)
    except PromptlibError as e:
        _fail(e)

    console.print(
        f"[green]✓[/green] {escape(definition.name)}: "
        f"description={escape(repr(definition.description))} "
        f"default={escape(repr(definition.default_value))}"
    )
    console.print(Panel(_segments_to_text(draft.preview()), title="With defaults"))


@cli.command()
@click.argument("name")
@click.argument("tags", nargs=-1, required=True)
@click.option("--remove", is_flag=True, help="Remove the tags instead of adding them")
def tag(name: str, tags: tuple[str, ...], remove: bool):
    """Add tags to a prompt, or remove them with --remove."""
    try:
        with Storage() as storage:
            current = storage.get_prompt(name).tags
            if remove:
                dropped = {t.strip() for t in tags}
                updated = [t for t in current if t not in dropped]
            else:
                updated = current + list(tags)
            prompt = storage.update_prompt(name, tags=updated)
    except PromptlibError as e:
        _fail(e)

    console.print(
        f"[green]✓[/green] {escape(prompt.name)} tags: {escape(', '.join(prompt.tags) or 'none')}"
    )


@cli.command()
@click.argument("name")
@click.option("--remove", is_flag=True, help="Unstar the prompt")
def favorite(name: str, remove: bool):
    """Star a prompt so it shows up under list --favorites."""
    try:
        with Storage() as storage:
            prompt = storage.set_favorite(name, not remove)
    except PromptlibError as e:
        _fail(e)

    if prompt.favorite:
        console.print(f"[yellow]★[/yellow] Starred {escape(prompt.name)}")
    else:
        console.print(f"[green]✓[/green] Unstarred {escape(prompt.name)}")


@cli.command()
@click.argument("source")
@click.argument("new_name", required=False)
def fork(source: str, new_name: str | None):
    """Copy a prompt under a new name (default: SOURCE-remix)."""
    new_name = new_name or f"{source}-remix"
    try:
        validate_name(new_name)
        with Storage() as storage:
            prompt = storage.fork_prompt(source, new_name)
    except PromptlibError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Forked {escape(source)} as {escape(prompt.name)}")


@cli.command()
@click.argument("name")
def show(name: str):
    """Show a prompt with its variables highlighted."""
    try:
        with Storage() as storage:
            prompt = storage.get_prompt(name)
    except PromptlibError as e:
        _fail(e)

    star = " ★" if prompt.favorite else ""
    console.print(
        Panel(
            _segments_to_text(highlight_variables(prompt.content)),
            title=f"{escape(prompt.name)}{star}",
            subtitle=(
                f"{escape(prompt.category)} · {prompt.platform.lower()} "
                f"· copied {prompt.copy_count}x"
            ),
        )
    )
    if prompt.description:
        console.print(escape(prompt.description))
    if prompt.tags:
        console.print(f"[dim]Tags:[/dim] {escape(', '.join(prompt.tags))}")

    if prompt.variables:
        table = Table(title="Variables")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        table.add_column("Default", style="dim")
        for v in prompt.variables:
            table.add_row(
                escape(v.name),
                escape(v.description or ""),
                escape(v.default_value or ""),
            )
        console.print(table)


@cli.command()
@click.argument("name")
@click.option("--var", "-v", "assignments", multiple=True, help="Variable value as name=value")
@click.option("--plain", is_flag=True, help="Print only the rendered text")
def preview(name: str, assignments: tuple[str, ...], plain: bool):
    """Preview a prompt with values and defaults filled in."""
    try:
        with Storage() as storage:
            draft = PromptDraft.from_prompt(storage.get_prompt(name))
        for key, value in _parse_assignments(assignments).items():
            draft.set_value(key, value)
    except PromptlibError as e:
        _fail(e)

    missing = draft.missing()
    if plain:
        click.echo(draft.rendered_text())
        if missing:
            err_console.print(f"[yellow]Unfilled:[/yellow] {escape(', '.join(missing))}")
        return

    console.print(Panel(_segments_to_text(draft.rendered()), title=f"Preview: {escape(name)}"))
    if missing:
        console.print(f"[yellow]Unfilled:[/yellow] {escape(', '.join(missing))}")


@cli.command()
@click.argument("name")
@click.option("--var", "-v", "assignments", multiple=True, help="Variable value as name=value")
@click.option("--strict", is_flag=True, help="Fail if any variable is left unfilled")
@click.option("--copy", "to_clipboard", is_flag=True, help="Copy the result to the clipboard")
def fill(name: str, assignments: tuple[str, ...], strict: bool, to_clipboard: bool):
    """Fill in a prompt and print the result."""
    try:
        with Storage() as storage:
            draft = PromptDraft.from_prompt(storage.get_prompt(name))
            for key, value in _parse_assignments(assignments).items():
                draft.set_value(key, value)
            missing = draft.missing()
            if strict and missing:
                raise PromptlibError.missing_variables(missing)
            filled = draft.filled_text()
            storage.record_copy(name)
    except PromptlibError as e:
        _fail(e)

    click.echo(filled)
    if to_clipboard:
        if _copy_to_clipboard(filled):
            err_console.print("[green]✓[/green] Copied to clipboard")
        else:
            err_console.print("[yellow]Clipboard not available[/yellow]")


@cli.command("list")
@click.option("--category", default=None, help="Only this category")
@click.option("--tag", "-t", "tags", multiple=True, help="Only prompts with any of these tags")
@click.option(
    "--platform",
    type=click.Choice(PLATFORMS, case_sensitive=False),
    default=None,
    help="Only this platform",
)
@click.option("--favorites", is_flag=True, help="Only starred prompts")
def list_(category: str | None, tags: tuple[str, ...], platform: str | None, favorites: bool):
    """List saved prompts."""
    try:
        with Storage() as storage:
            prompts = storage.list_prompts(
                category,
                tags=list(tags),
                platform=platform,
                favorites_only=favorites,
            )
    except PromptlibError as e:
        _fail(e)

    if not prompts:
        console.print("[yellow]No prompts found.[/yellow]")
        return

    table = Table(title="Prompts")
    table.add_column("", style="yellow")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Tags")
    table.add_column("Variables")
    table.add_column("Copies", justify="right")
    for p in prompts:
        table.add_row(
            "★" if p.favorite else "",
            p.name,
            escape(p.category),
            escape(", ".join(p.tags)),
            escape(", ".join(p.variable_names)),
            str(p.copy_count),
        )
    console.print(table)


@cli.command()
@click.argument("name")
def delete(name: str):
    """Delete a prompt."""
    try:
        with Storage() as storage:
            prompt = storage.delete_prompt(name)
    except PromptlibError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted {escape(prompt.name)}")


def main():
    cli()


if __name__ == "__main__":
    main()
