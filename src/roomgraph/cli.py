"""Command Line Interface for roomgraph.

This module provides a small CLI for detecting rooms in a plan file,
validating the room hierarchy, applying edit operations and inspecting wall
assemblies.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .assembly.wall_types import (
    BUILT_IN_WALL_TYPES,
    resolve_wall_layers,
    wall_r_value,
    wall_total_thickness,
    wall_u_value,
)
from .config import DetectionSettings
from .core.model import Plan
from .engine.api import apply_operations, detect, validate
from .io.parser import load_plan, save_plan

app = typer.Typer(
    name="roomgraph",
    help="Wall topology, room detection and wall assembly tools for floor plans",
    no_args_is_help=True,
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _print_rooms(plan: Plan, settings: DetectionSettings) -> None:
    names = {room.id: room.name for room in plan.rooms}
    table = Table()
    table.add_column("Room", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Space Type", style="magenta")
    table.add_column("Gross", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Net m²", justify="right")
    table.add_column("Parent", style="yellow")

    for room in plan.rooms:
        table.add_row(
            room.name,
            room.room_type,
            room.space_type,
            f"{room.gross_area:.1f}",
            f"{room.net_area:.1f}",
            f"{room.net_area * settings.m_per_unit ** 2:.2f}",
            names.get(room.parent_room_id, "-") if room.parent_room_id else "-",
        )
    console.print(table)


@app.command("detect")
def detect_command(
    plan: Path = typer.Option(..., "--plan", "-p", help="Path to plan JSON file"),
    output: Optional[Path] = typer.Option(None, "--out", help="Write the plan with detected rooms here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Detect rooms from the walls of a plan."""
    _configure_logging(verbose)
    settings = DetectionSettings.from_env()
    try:
        detected = detect(load_plan(str(plan)), settings)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Detected {len(detected.rooms)} rooms from {len(detected.walls)} walls")
    _print_rooms(detected, settings)

    if output:
        save_plan(detected, str(output))
        console.print(f"[green]✓[/green] Result saved to {output}")


@app.command("validate")
def validate_command(
    plan: Path = typer.Option(..., "--plan", "-p", help="Path to plan JSON file"),
    redetect: bool = typer.Option(True, "--redetect/--stored", help="Re-derive rooms before validating"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Validate the nested room hierarchy of a plan."""
    _configure_logging(verbose)
    try:
        plan_obj = load_plan(str(plan))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if redetect:
        plan_obj = detect(plan_obj, DetectionSettings.from_env())
    result = validate(plan_obj)

    for warning in result.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")
    for error in result.errors:
        console.print(f"[red]✗[/red] {error}")

    if not result.ok:
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {len(plan_obj.rooms)} rooms valid")


@app.command("apply")
def apply_command(
    plan: Path = typer.Option(..., "--plan", "-p", help="Path to plan JSON file"),
    operation: Path = typer.Option(..., "--op", help="Path to operation JSON file (object or list)"),
    output: Path = typer.Option(..., "--out", help="Path to output plan JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Apply one or more operations to a plan and save the result.

    Operations rejected by the room validator are not applied.
    """
    _configure_logging(verbose)
    settings = DetectionSettings.from_env()
    try:
        plan_obj = detect(load_plan(str(plan)), settings)
        with open(operation, encoding="utf-8") as f:
            operation_data = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: Invalid operation JSON - {e}[/red]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    operations = operation_data if isinstance(operation_data, list) else [operation_data]
    try:
        final_plan, results = apply_operations(plan_obj, operations, settings=settings)
    except ValueError as e:
        console.print(f"[red]✗[/red] Operation failed: {e}")
        raise typer.Exit(1)

    rejected = 0
    for index, (op_data, result) in enumerate(zip(operations, results), start=1):
        label = op_data.get("op") or op_data.get("type")
        if result.ok:
            console.print(f"[green]✓[/green] {index}. {label}")
        else:
            rejected += 1
            console.print(f"[red]✗[/red] {index}. {label} not applied")
            for error in result.errors:
                console.print(f"    [red]{error}[/red]")
        for warning in result.warnings:
            console.print(f"    [yellow]⚠ {warning}[/yellow]")

    save_plan(final_plan, str(output))
    console.print(f"[green]✓[/green] Result saved to {output}")
    if rejected:
        raise typer.Exit(1)


@app.command("assembly")
def assembly_command(
    plan: Optional[Path] = typer.Option(None, "--plan", "-p", help="Show assemblies of this plan's walls"),
):
    """Show wall assemblies with thickness and thermal values."""
    if plan is None:
        table = Table(title="Wall types")
        table.add_column("Id", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Layers", justify="center")
        table.add_column("Thickness mm", justify="right")
        table.add_column("U W/m²K", justify="right")
        for wall_type in BUILT_IN_WALL_TYPES:
            table.add_row(
                wall_type.id,
                wall_type.name,
                str(len(wall_type.layers)),
                f"{wall_type.total_thickness:g}",
                f"{wall_type.u_value:.3f}",
            )
        console.print(table)
        return

    try:
        plan_obj = load_plan(str(plan))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Wall assemblies")
    table.add_column("Wall", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Layers")
    table.add_column("Thickness mm", justify="right")
    table.add_column("R m²K/W", justify="right")
    table.add_column("U W/m²K", justify="right")
    table.add_column("Override", justify="center")
    for wall in plan_obj.walls:
        layers = resolve_wall_layers(wall)
        table.add_row(
            wall.id,
            wall.wall_type_id or "-",
            " / ".join(f"{layer.name} {layer.thickness:g}" for layer in layers),
            f"{wall_total_thickness(wall):g}",
            f"{wall_r_value(wall):.3f}",
            f"{wall_u_value(wall):.3f}",
            "✓" if wall.is_wall_type_override else "",
        )
    console.print(table)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
