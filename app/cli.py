from __future__ import annotations

import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from adapters.excalidraw.repository import FileSystemSceneRepository
from adapters.routing.orthogonal import OrthogonalRouter
from adapters.scene.in_memory import InMemoryScene
from app.config import AppSettings, load_settings
from domain.models import Point, SceneDocument
from domain.services.binding_engine import BindingEngine
from domain.services.bound_elements import BindingIssue, find_binding_issues

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="YAML settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    try:
        ctx.obj = load_settings(config)
    except (FileNotFoundError, ValidationError) as exc:
        console.print(f"[red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _load(ctx: typer.Context, scene_path: Path) -> tuple[SceneDocument, BindingEngine]:
    if not scene_path.exists():
        console.print(f"[red]File not found:[/] {scene_path}")
        raise typer.Exit(code=1)
    document = FileSystemSceneRepository().load(scene_path)
    settings: AppSettings = ctx.obj
    engine = BindingEngine(
        InMemoryScene(document.elements),
        router=OrthogonalRouter(settings.router.to_router_config()),
        config=settings.binding.to_binding_config(),
    )
    return document, engine


def _save(document: SceneDocument, engine: BindingEngine, target: Path) -> None:
    FileSystemSceneRepository().save(
        SceneDocument(
            elements=engine.scene.get_elements(),
            app_state=document.app_state,
            files=document.files,
            source=document.source,
        ),
        target,
    )
    console.print(f"[green]Wrote[/] {target}")


def _print_issues(issues: list[BindingIssue]) -> None:
    table = Table("kind", "element", "target", "detail")
    for issue in issues:
        table.add_row(issue.kind, issue.element_id, issue.target_id or "", issue.detail)
    console.print(table)


@app.command("check")
def check(
    ctx: typer.Context,
    scene_path: Path = typer.Argument(..., help="Excalidraw scene to inspect."),
) -> None:
    document, _ = _load(ctx, scene_path)
    issues = find_binding_issues(document.elements)
    if not issues:
        console.print(f"[green]Bindings are consistent:[/] {scene_path}")
        return
    _print_issues(issues)
    console.print(f"[red]Found {len(issues)} binding issue(s)[/] in {scene_path}")
    raise typer.Exit(code=1)


@app.command("repair")
def repair(
    ctx: typer.Context,
    scene_path: Path = typer.Argument(..., help="Excalidraw scene to repair."),
    output: Path | None = typer.Option(None, help="Where to write the result; defaults to in place."),
) -> None:
    document, engine = _load(ctx, scene_path)
    issues = engine.repair()
    if not issues:
        console.print(f"[green]Nothing to repair:[/] {scene_path}")
        return
    _print_issues(issues)
    _save(document, engine, output or scene_path)


@app.command("move")
def move(
    ctx: typer.Context,
    scene_path: Path = typer.Argument(..., help="Excalidraw scene to edit."),
    element_id: str = typer.Option(..., "--id", help="Element to move."),
    dx: float = typer.Option(0.0, "--dx"),
    dy: float = typer.Option(0.0, "--dy"),
    output: Path | None = typer.Option(None, help="Where to write the result; defaults to in place."),
) -> None:
    document, engine = _load(ctx, scene_path)
    if engine.move_element(element_id, dx, dy) is None:
        console.print(f"[red]Element not found:[/] {element_id}")
        raise typer.Exit(code=1)
    _save(document, engine, output or scene_path)


@app.command("delete")
def delete(
    ctx: typer.Context,
    scene_path: Path = typer.Argument(..., help="Excalidraw scene to edit."),
    element_ids: list[str] = typer.Option(..., "--id", help="Element to delete; repeatable."),
    output: Path | None = typer.Option(None, help="Where to write the result; defaults to in place."),
) -> None:
    document, engine = _load(ctx, scene_path)
    deleted = engine.delete_elements(element_ids)
    if not deleted:
        console.print("[yellow]No live elements matched[/]")
        raise typer.Exit(code=1)
    console.print(f"Deleted {len(deleted)} element(s)")
    _save(document, engine, output or scene_path)


@app.command("duplicate")
def duplicate(
    ctx: typer.Context,
    scene_path: Path = typer.Argument(..., help="Excalidraw scene to edit."),
    element_ids: list[str] = typer.Option(..., "--id", help="Element to duplicate; repeatable."),
    dx: float = typer.Option(10.0, "--dx"),
    dy: float = typer.Option(10.0, "--dy"),
    output: Path | None = typer.Option(None, help="Where to write the result; defaults to in place."),
) -> None:
    document, engine = _load(ctx, scene_path)
    duplicates, orig_to_dup = engine.duplicate_elements(element_ids, Point(dx, dy))
    if not duplicates:
        console.print("[yellow]No live elements matched[/]")
        raise typer.Exit(code=1)
    for original, copy_id in orig_to_dup.items():
        console.print(f"{original} -> {copy_id}")
    _save(document, engine, output or scene_path)


if __name__ == "__main__":
    app()
