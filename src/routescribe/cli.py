from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from routescribe.config import Settings, get_settings, kind_from_name
from routescribe.domain.errors import RouteScribeError
from routescribe.domain.models import Route
from routescribe.observability import setup_logging
from routescribe.orchestrator.pipeline import AnalyzeResult, run_analyze
from routescribe.render.report import ANY_METHOD


app = typer.Typer(no_args_is_help=True, add_completion=False)

routes_app = typer.Typer(no_args_is_help=True)
app.add_typer(routes_app, name="routes")

console = Console()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, help="Log level (DEBUG/INFO/WARNING/ERROR)"),
) -> None:
    setup_logging(log_level or get_settings().log_level)


def _repo_path(repo: str) -> Path:
    repo_path = Path(repo).expanduser().resolve()
    if not repo_path.exists():
        raise typer.BadParameter(f"Repo path does not exist: {repo_path}")
    if not repo_path.is_dir():
        raise typer.BadParameter(f"Repo path is not a directory: {repo_path}")
    return repo_path


def _settings(kinds: Optional[List[str]]) -> Settings:
    settings = get_settings()
    if not kinds:
        return settings
    try:
        recognized = [kind_from_name(k) for k in kinds]
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    return settings.model_copy(update={"recognized_kinds": recognized})


def _run(repo_path: Path, settings: Settings, **kwargs) -> AnalyzeResult:
    try:
        return run_analyze(repo_path, settings=settings, **kwargs)
    except RouteScribeError as exc:
        console.print(f"[bold red]error[/bold red]: {escape(str(exc))}")
        raise typer.Exit(code=1)


@app.command()
def analyze(
    repo: str = typer.Argument(..., help="Path to the repo to analyze"),
    out: Optional[str] = typer.Option(None, help="Report path (default: <repo>/.routescribe/routes)"),
    max_files: Optional[int] = typer.Option(None, help="Limit scanned files (debug)"),
    kind: Optional[List[str]] = typer.Option(None, help="Recognized mapping kind, in priority order (repeatable)"),
) -> None:
    repo_path = _repo_path(repo)
    settings = _settings(kind)
    output = Path(out).expanduser() if out else None

    result = _run(repo_path, settings, max_files=max_files, output=output)

    console.print(f"[bold green]routescribe[/bold green] analyze: {repo_path}")
    console.print(f"Python files scanned: {result.files_scanned}")
    if result.skipped_files:
        console.print(f"Skipped files: {len(result.skipped_files)}")
    console.print(f"Declaring types: {len(result.group)}")
    console.print(f"Routes found: [bold]{result.route_count}[/bold]")
    if result.warnings:
        console.print(f"[yellow]Warnings: {len(result.warnings)}[/yellow]")
    console.print("")
    console.print(f"Report: {result.report_path}")


def _matches(
    route: Route,
    method: Optional[str],
    path_contains: Optional[str],
) -> bool:
    if method and route.methods and method.upper() not in route.methods:
        return False
    if path_contains and path_contains not in route.path:
        return False
    return True


@routes_app.command("list")
def routes_list(
    repo: str = typer.Argument(..., help="Path to the repo"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/...)"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on route path"),
    type_contains: Optional[str] = typer.Option(None, help="Substring match on declaring type"),
    limit: int = typer.Option(200, help="Max rows to print (table format)"),
    format: str = typer.Option("text", help="Output format: text|table|json"),
    kind: Optional[List[str]] = typer.Option(None, help="Recognized mapping kind, in priority order (repeatable)"),
) -> None:
    repo_path = _repo_path(repo)
    fmt = format.lower().strip()
    if fmt not in ("text", "table", "json"):
        raise typer.BadParameter("format must be one of: text, table, json")

    result = _run(repo_path, _settings(kind), write=False)

    if fmt == "text" and not (method or path_contains or type_contains):
        # unfiltered text is exactly the report
        typer.echo(result.report, nl=False)
        return

    selected = [
        (declaring_type, r)
        for declaring_type, routes in result.group.items()
        if not type_contains or type_contains in declaring_type
        for r in routes
        if _matches(r, method, path_contains)
    ]

    if fmt == "json":
        payload = {
            "repo": result.repo_path,
            "routes": [{"declaring_type": t, **r.model_dump(mode="json")} for t, r in selected],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if fmt == "text":
        for t, r in selected:
            methods = " ".join(r.methods) if r.methods else ANY_METHOD
            typer.echo(f"{methods} {r.path} -> {t}")
        return

    console.print(f"[bold]Routes:[/bold] {len(selected)} (showing up to {limit})")

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("HANDLER")
    table.add_column("FILE:LINE", no_wrap=True)
    table.add_column("DEPRECATED", no_wrap=True)

    for _, r in selected[:limit]:
        table.add_row(
            escape(" ".join(r.methods) or ANY_METHOD),
            escape(r.path),
            escape(r.handler),
            f"{r.file_path}:{r.line}",
            "yes" if r.deprecated else "",
        )

    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
