"""
Command-line interface for PromptVault.

Usage:
    promptvault init                              # Create config and prompts directory
    promptvault create <category> <name> ...      # Create a prompt
    promptvault get <category> <name>             # Show a prompt
    promptvault list                              # List prompts
    promptvault update <category> <name> ...      # Update (creates a new version)
    promptvault render <category> <name> ...      # Render a prompt
    promptvault versions <category> <name>        # Show version history
    promptvault switch <category> <name> <ver>    # Change the current version
    promptvault rename <category> <name> <c> <n>  # Move a prompt and its history
    promptvault export <category>                 # Export a category
    promptvault import <file>                     # Import prompts
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from promptvault.core.manager import PromptManager
from promptvault.core.models import VersionAction
from promptvault.errors import PromptVaultError

T = TypeVar("T")

app = typer.Typer(
    name="promptvault",
    help="Prompt storage and versioning",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Show or change project configuration", no_args_is_help=True)
app.add_typer(config_app, name="config")

console = Console()


def get_manager() -> PromptManager:
    """Get manager from environment configuration."""
    return PromptManager.from_env()


def run(operation: Callable[[PromptManager], Awaitable[T]]) -> T:
    """Initialize a manager, run ``operation`` with it, and report errors."""

    async def _main() -> T:
        manager = get_manager()
        await manager.initialize()
        return await operation(manager)

    try:
        return asyncio.run(_main())
    except PromptVaultError as e:
        rprint(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _split_tags(tags: Optional[str]) -> list[str]:
    return [t.strip() for t in tags.split(",") if t.strip()] if tags else []


def _parse_value(raw: str) -> Any:
    """Interpret a CLI value as JSON when possible, else as a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Prompt storage and versioning."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@app.command()
def init():
    """Create the config file and prompts directory."""

    async def _init(manager: PromptManager) -> None:
        rprint(f"[green]✓[/green] Config: {manager.config.config_path}")
        rprint(f"[green]✓[/green] Prompts directory: {manager.config.prompts_dir}")
        rprint(f"[green]✓[/green] Output directory: {manager.config.output_dir}")

    run(_init)

    rprint("\n[dim]Set environment variables to choose the project:[/dim]")
    rprint("  PROMPTVAULT_ROOT=/path/to/project")
    rprint("  PROMPTVAULT_CONFIG=/path/to/promptvault.json")


@app.command()
def create(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Prompt template"),
    params: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Declared parameter (repeatable)"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    tags: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tags"),
    model: Optional[str] = typer.Option(None, "--model", help="Model name"),
    temperature: Optional[float] = typer.Option(None, "--temperature", help="Temperature"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="JSON record to create from"),
):
    """Create a new prompt at version 1.0.0."""
    if file is not None:
        try:
            record: dict[str, Any] = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            rprint(f"[red]Cannot read {file}: {e}[/red]")
            raise typer.Exit(1)
    elif template is not None:
        record = {"template": template, "parameters": params or []}
    else:
        rprint("[red]Provide --template or --file[/red]")
        raise typer.Exit(1)

    record.update({"category": category, "name": name})
    if description:
        record["description"] = description
    if tags:
        record["tags"] = _split_tags(tags)

    configuration = dict(record.get("configuration") or {})
    if model:
        configuration["modelName"] = model
    if temperature is not None:
        configuration["temperature"] = temperature
    if configuration:
        record["configuration"] = configuration

    prompt = run(lambda manager: manager.create_prompt(record))

    rprint(Panel(
        f"[green]✓ Created prompt:[/green] {category}/{name}\n"
        f"  Version: {prompt.version}\n"
        f"  Parameters: {', '.join(prompt.parameters) or 'none'}",
        title="Success",
    ))


@app.command()
def get(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    version: Optional[str] = typer.Option(None, "--version", help="Version"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show a prompt."""
    prompt = run(lambda manager: manager.get_prompt(category, name, version))

    if json_output:
        print(json.dumps(prompt.to_dict(), indent=2))
        return

    syntax = Syntax(prompt.template, "text", theme="monokai", word_wrap=True)
    rprint(Panel(syntax, title=f"{category}/{name} v{prompt.version}"))
    if prompt.description:
        rprint(f"[dim]{prompt.description}[/dim]")
    rprint(f"[dim]Parameters: {', '.join(prompt.parameters) or 'none'}[/dim]")
    rprint(f"[dim]Model: {prompt.configuration.model_name}[/dim]")
    rprint(f"[dim]Hash: {prompt.content_hash}[/dim]")


@app.command("list")
def list_prompts(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List prompts."""
    summaries = run(lambda manager: manager.list_prompts(category))

    if json_output:
        print(json.dumps([s.model_dump(mode="json") for s in summaries], indent=2))
        return

    if not summaries:
        rprint("[dim]No prompts found[/dim]")
        return

    table = Table(title="Prompts")
    table.add_column("Category", style="magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Current", justify="right")
    table.add_column("Versions", justify="right", style="dim")

    for summary in summaries:
        table.add_row(
            summary.category,
            summary.name,
            summary.current_version,
            str(summary.version_count),
        )

    console.print(table)


@app.command()
def update(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="New template"),
    params: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Declared parameter (repeatable)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    tags: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tags"),
    version: Optional[str] = typer.Option(None, "--version", help="Explicit new version"),
):
    """Update a prompt (creates new version)."""
    patch: dict[str, Any] = {}
    if template is not None:
        patch["template"] = template
    if params:
        patch["parameters"] = params
    if description is not None:
        patch["description"] = description
    if tags is not None:
        patch["tags"] = _split_tags(tags)
    if version is not None:
        patch["version"] = version

    prompt = run(lambda manager: manager.update_prompt(category, name, patch))
    rprint(f"[green]✓ Updated {category}/{name} to version {prompt.version}[/green]")


@app.command()
def delete(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a prompt and all of its versions."""
    if not yes:
        typer.confirm(f"Delete {category}/{name} and its whole history?", abort=True)

    run(lambda manager: manager.delete_prompt(category, name))
    rprint(f"[green]✓ Deleted {category}/{name}[/green]")


@app.command()
def rename(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    new_category: str = typer.Argument(..., help="New category"),
    new_name: str = typer.Argument(..., help="New prompt name"),
):
    """Move a prompt and its history to a new category/name."""
    run(lambda manager: manager.rename_prompt(category, name, new_category, new_name))
    rprint(f"[green]✓ Renamed {category}/{name} to {new_category}/{new_name}[/green]")


@app.command()
def render(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    version: Optional[str] = typer.Option(None, "--version", help="Version"),
    vars: Optional[str] = typer.Option(None, "--vars", help="JSON parameters"),
    sets: Optional[List[str]] = typer.Option(None, "--set", "-s", help="key=value parameter (repeatable)"),
):
    """Render a prompt with parameters."""
    params: dict[str, Any] = {}
    if vars:
        try:
            params = json.loads(vars)
        except json.JSONDecodeError as e:
            rprint(f"[red]Invalid JSON for --vars: {e}[/red]")
            raise typer.Exit(1)

    for item in sets or []:
        key, sep, value = item.partition("=")
        if not sep:
            rprint(f"[red]Expected key=value, got: {item}[/red]")
            raise typer.Exit(1)
        params[key] = value

    rendered = run(lambda manager: manager.format_prompt(category, name, params, version))
    rprint(Panel(rendered, title="Rendered Prompt"))


@app.command()
def versions(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
):
    """Show version history for a prompt."""

    async def _history(manager: PromptManager) -> tuple[str, list]:
        current = await manager.get_prompt(category, name)
        listed = await current.versions()
        records = [await manager.get_prompt(category, name, v) for v in listed]
        return current.version, records

    current_version, records = run(_history)

    table = Table(title=f"Version History: {category}/{name}")
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Current", style="yellow")
    table.add_column("Modified", style="dim")
    table.add_column("Author")
    table.add_column("Hash", style="dim")

    for record in records:
        table.add_row(
            record.version,
            "●" if record.version == current_version else "",
            record.metadata.last_modified.strftime("%Y-%m-%d %H:%M"),
            record.metadata.author or "-",
            record.content_hash[:8],
        )

    console.print(table)


@app.command()
def snapshot(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
):
    """Save the current content again under the next version."""
    result = run(lambda manager: manager.version_prompt(VersionAction.CREATE, category, name))
    rprint(f"[green]✓ Created version {result.result} of {category}/{name}[/green]")


@app.command()
def switch(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    version: str = typer.Argument(..., help="Version to make current"),
):
    """Make an existing version the current one."""
    run(lambda manager: manager.version_prompt(VersionAction.SWITCH, category, name, version))
    rprint(f"[green]✓ {category}/{name} now at version {version}[/green]")


@app.command()
def compare(
    category: str = typer.Argument(..., help="Category"),
    name: str = typer.Argument(..., help="Prompt name"),
    v1: str = typer.Argument(..., help="First version"),
    v2: str = typer.Argument(..., help="Second version"),
):
    """Compare two versions of a prompt."""
    diff = run(lambda manager: manager.compare_versions(category, name, v1, v2))

    rprint(Panel(f"Comparing v{v1} → v{v2}", title=f"{category}/{name}"))

    if diff["template_changed"]:
        rprint("\n[yellow]Template changed[/yellow]")
        rprint("[red]- Old:[/red]")
        rprint(Syntax(diff["v1_template"], "text", theme="monokai"))
        rprint("[green]+ New:[/green]")
        rprint(Syntax(diff["v2_template"], "text", theme="monokai"))
    else:
        rprint("[dim]Template unchanged[/dim]")

    if diff["parameters_added"]:
        rprint(f"[green]+ Parameters added: {diff['parameters_added']}[/green]")
    if diff["parameters_removed"]:
        rprint(f"[red]- Parameters removed: {diff['parameters_removed']}[/red]")


@app.command()
def categories():
    """List all categories."""

    async def _categories(manager: PromptManager) -> list[tuple[str, int]]:
        names = await manager.list_categories()
        return [(c, len(await manager.list_prompts(c))) for c in names]

    listed = run(_categories)

    if not listed:
        rprint("[dim]No categories found[/dim]")
        return

    for category, count in listed:
        rprint(f"[cyan]{category}[/cyan] ({count} prompts)")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum results"),
):
    """Search for prompts."""
    results = run(lambda manager: manager.search_prompts(query, category, limit))

    if not results:
        rprint(f"[dim]No results for '{query}'[/dim]")
        return

    rprint(f"Found {len(results)} results for '{query}':\n")
    for summary in results:
        rprint(f"[cyan]{summary.category}/{summary.name}[/cyan] v{summary.current_version}")


@app.command()
def export(
    category: str = typer.Argument(..., help="Category to export"),
    output: str = typer.Option("export.json", "--output", "-o", help="Output file"),
):
    """Export a category to JSON."""
    json_str = run(lambda manager: manager.export_json(category))

    Path(output).write_text(json_str, encoding="utf-8")
    rprint(f"[green]✓ Exported category '{category}' to {output}[/green]")


@app.command("import")
def import_prompts(
    file: Path = typer.Argument(..., help="JSON file to import"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite existing prompts"),
):
    """Import prompts from JSON."""
    try:
        json_str = file.read_text(encoding="utf-8")
    except OSError as e:
        rprint(f"[red]Cannot read {file}: {e}[/red]")
        raise typer.Exit(1)

    stats = run(lambda manager: manager.import_json(json_str, overwrite))

    rprint(f"[green]✓ Imported {stats['imported']}/{stats['total']} prompts[/green]")
    if stats["skipped"]:
        rprint(f"[yellow]Skipped {stats['skipped']} existing prompts[/yellow]")
    if stats["errors"]:
        rprint(f"[red]Errors: {len(stats['errors'])}[/red]")
        for err in stats["errors"]:
            rprint(f"  - {err['prompt']}: {err['error']}")


@config_app.command("show")
def config_show():
    """Print the project configuration."""

    async def _show(manager: PromptManager) -> dict[str, Any]:
        return manager.config.config.model_dump(mode="json", by_alias=True, exclude_none=True)

    print(json.dumps(run(_show), indent=2))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Config key, e.g. preferredModels"),
    value: str = typer.Argument(..., help="New value (JSON or plain string)"),
):
    """Change one configuration value."""
    run(lambda manager: manager.update_config({key: _parse_value(value)}))
    rprint(f"[green]✓ Set {key}[/green]")


if __name__ == "__main__":
    app()
