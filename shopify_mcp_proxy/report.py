"""Console output for the CLI."""

from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table

from . import utils
from .parser import ValidationResult
from .versions import ApiVersionInfo

console = Console()


def emit_validation(result: ValidationResult, surface: str, fmt: str) -> None:
    """
    Output a validation result.

    Args:
        result: Validation outcome
        surface: API surface the query was checked against
        fmt: Output format ("json" or "console")
    """
    if fmt == "json":
        print(utils.to_json({"surface": surface, **result.to_dict()}))
        return

    console.print(f"\n[bold cyan]Query Validation ({surface})[/bold cyan]\n")
    if result.valid:
        console.print("[green]✓ Query is valid[/green]\n")
        return

    for error in result.errors:
        msg = f"  [red]✖[/red] {error['message']}"
        if error.get("locations"):
            loc_str = ", ".join(f"line {loc['line']}:{loc['column']}" for loc in error["locations"])
            msg += f" [dim]({loc_str})[/dim]"
        console.print(msg)
    console.print()


def print_versions(surface: str, resolved: Optional[str], versions: Optional[Iterable[ApiVersionInfo]]) -> None:
    """Print discovered API versions, marking the resolved one."""
    console.print(f"\n[bold cyan]{surface.title()} API versions[/bold cyan]\n")

    if not versions:
        console.print("[yellow]⚠ No version list available[/yellow]")
    else:
        table = Table(box=None)
        table.add_column("Handle", style="cyan")
        table.add_column("Name")
        table.add_column("Supported")

        for v in sorted(versions, key=lambda v: v.handle, reverse=True):
            marker = " [bold green]←[/bold green]" if v.handle == resolved else ""
            supported = "[green]✓[/green]" if v.supported else "[dim]✖[/dim]"
            table.add_row(f"{v.handle}{marker}", v.display_name, supported)

        console.print(table)

    console.print(f"\nResolved: [bold]{resolved or 'unavailable'}[/bold]\n")


def print_kv(title: str, data: dict) -> None:
    """
    Print key-value pairs (for schema pull, config init).

    Args:
        title: Section title
        data: Key-value data
    """
    console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="yellow")

    for k, v in data.items():
        table.add_row(k, str(v))

    console.print(table)
    console.print()
