"""Rich-powered tables for module listings and config summaries."""
from __future__ import annotations

from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

from ..modules.base import ModuleOptions
from ..modules.factory import is_parser_class
from ..modules.registry import ModuleRegistry

_console = Console()


def _type_name(annotation: Any) -> str:
    if isinstance(annotation, type):
        return annotation.__name__
    return str(annotation).replace("typing.", "")


def option_rows(options: type[ModuleOptions]) -> list[tuple[str, str, bool, str, str]]:
    """Describe an options model as (name, type, required, default, description) rows."""
    rows: list[tuple[str, str, bool, str, str]] = []
    for field_name, info in options.model_fields.items():
        required = info.is_required()
        default = "" if required else repr(info.get_default(call_default_factory=True))
        rows.append(
            (
                info.alias or field_name,
                _type_name(info.annotation),
                required,
                default,
                info.description or "",
            )
        )
    return rows


def print_modules_table(
    modules: list[tuple[str, type]],
    console: Console | None = None,
) -> None:
    """Render one table per module class with its configuration options.

    Args:
        modules:  (short name, class) pairs, e.g. ModuleFactory.available().
        console:  Target console; defaults to stdout.
    """
    out = console or _console
    if not modules:
        out.print("[yellow]No modules available.[/yellow]")
        return

    for short_name, cls in modules:
        kind = "parser" if is_parser_class(cls) else "processor"
        table = Table(
            title=f"[bold]{short_name}[/bold] ({kind}): {getattr(cls, 'description', '')}",
            title_justify="left",
            box=box.SIMPLE_HEAVY,
        )
        table.add_column("Option", style="cyan")
        table.add_column("Type")
        table.add_column("Required", justify="center")
        table.add_column("Default", style="dim")
        table.add_column("Description", overflow="fold", max_width=60)
        for name, type_name, required, default, description in option_rows(cls.Options):
            table.add_row(name, type_name, "yes" if required else "", default, description)
        out.print(table)


def print_registry_table(
    registry: ModuleRegistry,
    title: str = "Module chain",
    console: Console | None = None,
) -> None:
    """Render the parsers of a registry in dispatch order with their bindings."""
    out = console or _console
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("#", style="dim", width=4)
    table.add_column("Parser", style="cyan")
    table.add_column("Run always", justify="center")
    table.add_column("Output keys", overflow="fold", max_width=40)
    table.add_column("Processor", style="green")
    table.add_column("Params", overflow="fold", max_width=50)

    for rank, entry in enumerate(registry.iter_parsers(), start=1):
        table.add_row(
            str(rank),
            entry.name,
            "yes" if entry.parser.run_always else "",
            ", ".join(entry.parser.output_keys),
            entry.binding.processor_name,
            str(entry.binding.process_params or ""),
        )

    out.print(table)
    out.print(
        f"[dim]{len(registry.parser_names())} parser(s), "
        f"{len(registry.processor_names())} processor(s): "
        f"{', '.join(registry.processor_names()) or 'none'}[/dim]"
    )
