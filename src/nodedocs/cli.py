"""CLI entry point for nodedocs -- graph node documentation generator."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from .errors import ConfigError

app = typer.Typer(
    name="nodedocs",
    help="Generate reference docs for graph node definitions.",
    add_completion=False,
)

console = Console()


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=False)],
        force=True,
    )


def _load_project(path: Path | None):
    """Find and load the project config, or exit with an error."""
    from .project import find_project_root, load_config

    start = Path(path).resolve() if path else Path.cwd()
    root = find_project_root(start) or start
    try:
        project = load_config(root)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)

    for entry in reversed(project.python_path):
        if str(entry) not in sys.path:
            sys.path.insert(0, str(entry))
    return project


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def init(
    path: Optional[Path] = typer.Argument(None, help="Project path (default: current directory)."),
    title: str = typer.Option("Node Reference", "--title", help="Documentation title."),
) -> None:
    """Write a starter nodedocs.toml."""
    from .project import init_project

    target = Path(path).resolve() if path else Path.cwd()
    try:
        config_path = init_project(target, title)
    except FileExistsError as exc:
        console.print(f"[yellow]Already initialised:[/yellow] {exc.args[0]}")
        raise typer.Exit(code=0)

    console.print(f"[green]Initialised[/green] {config_path}")
    console.print("  Edit it, then run [bold]nodedocs generate[/bold].")


@app.command()
def generate(
    path: Optional[Path] = typer.Argument(None, help="Project path (default: current directory)."),
    title: Optional[str] = typer.Option(None, "--title", help="Documentation title."),
    modules: Optional[list[str]] = typer.Option(None, "--module", "-m", help="Native module to document (repeatable)."),
    content: Optional[list[str]] = typer.Option(None, "--content", "-c", help="Content path to search (repeatable)."),
    exclude: Optional[list[str]] = typer.Option(None, "--exclude", "-x", help="Object name to skip (repeatable)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory for the renderer."),
    clean_output: Optional[bool] = typer.Option(None, "--clean-output/--no-clean-output", help="Ask the renderer to wipe the output dir."),
    tool: Optional[str] = typer.Option(None, "--tool", help="Renderer executable."),
    keep_intermediate: bool = typer.Option(False, "--keep-intermediate", help="Reuse the intermediate dir instead of cleaning it."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Generate intermediate docs and hand them to the renderer."""
    from .models import RunState
    from .orchestrator import generate_docs
    from .store import IntermediateStore

    _setup_logging(verbose)
    project = _load_project(path)

    # CLI flags override config values (only when explicitly provided).
    updates: dict = {}
    if title is not None:
        updates["documentation_title"] = title
    if modules:
        updates["native_modules"] = list(modules)
    if content:
        updates["content_paths"] = [str(Path(c).resolve()) for c in content]
    if exclude:
        updates["excluded_names"] = list(exclude)
    if output is not None:
        updates["output_directory"] = output.resolve()
    if clean_output is not None:
        updates["clean_output"] = clean_output
    settings = project.settings.model_copy(update=updates)

    tool_updates: dict = {}
    if tool is not None:
        tool_updates["executable"] = tool
    if keep_intermediate:
        tool_updates["clean_intermediate"] = False
    tool_config = project.tool.model_copy(update=tool_updates)

    console.print(f"[bold]Generating[/bold] {settings.documentation_title!r} ...")
    report = generate_docs(settings, config=tool_config)

    if report.state is RunState.aborted:
        console.print("[red]Aborted:[/red] the doc generator could not be initialised.")
        raise typer.Exit(code=1)

    tally = report.tally
    console.print(
        f"  {tally.objects_enumerated} object(s) found, {tally.objects_excluded} excluded, "
        f"{tally.node_count} node(s) documented."
    )
    artifacts = IntermediateStore(report.intermediate_dir).artifacts()
    console.print(f"  {len(artifacts)} intermediate file(s) written.")
    console.print(f"  Intermediate docs: {report.intermediate_dir}")
    if report.tool_error:
        console.print(f"[red]Renderer not run:[/red] {report.tool_error}")
    elif report.tool is not None and report.tool.cancelled:
        console.print("[yellow]Renderer cancelled.[/yellow]")
    elif report.tool is not None and report.tool.exit_code != 0:
        console.print(f"[red]Renderer failed[/red] with exit code {report.tool.exit_code}.")
    elif report.tool is not None:
        console.print(f"\n[bold green]Done![/bold green] Output in: {settings.output_directory}")


@app.command("list")
def list_objects(
    path: Optional[Path] = typer.Argument(None, help="Project path (default: current directory)."),
) -> None:
    """Show the objects a generate run would process, without writing anything."""
    from .exclusion import ExclusionFilter
    from .orchestrator import build_enumerators

    _setup_logging(False)
    project = _load_project(path)
    exclusion = ExclusionFilter(project.settings.excluded_names)

    total = 0
    for enumerator in build_enumerators(project.settings):
        for obj in enumerator:
            total += 1
            if exclusion.excludes(obj):
                console.print(f"  [dim]{obj.kind:8} {obj.name}  ({obj.origin}) excluded[/dim]")
            else:
                console.print(f"  {obj.kind:8} [bold]{obj.name}[/bold]  ({obj.origin})")

    if total == 0:
        console.print("[yellow]No source objects found.[/yellow]")


@app.command()
def config(
    path: Optional[Path] = typer.Argument(None, help="Project path (default: current directory)."),
) -> None:
    """Print the effective configuration."""
    project = _load_project(path)

    console.print(f"[bold]nodedocs config[/bold] ({project.root}):")
    for field_name in type(project.settings).model_fields:
        console.print(f"  docs.{field_name} = {getattr(project.settings, field_name)!r}")
    for field_name in type(project.tool).model_fields:
        console.print(f"  tool.{field_name} = {getattr(project.tool, field_name)!r}")
    if project.python_path:
        console.print(f"  python_path = {[str(p) for p in project.python_path]!r}")
