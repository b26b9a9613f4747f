"""Loggy CLI — entry point.

Commands:
    loggy run     [FILE] -c CONFIG   Feed FILE (or stdin) through the module chain
    loggy check   -c CONFIG          Validate a config file without starting modules
    loggy modules                    List available parsers/processors and their options
"""
from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .chain import ModuleChain
from .config import Settings
from .configfile import ConfigWatcher, load_config
from .errors import ConfigError
from .input.tailer import Tailer, stream_lines
from .modules.factory import ModuleFactory
from .runner import Runner
from .visualization.tables import print_modules_table, print_registry_table

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("loggy")

# ── Helpers ─────────────────────────────────────────────────────────────────


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _config_path(option: Path | None, settings: Settings) -> Path:
    path = option or settings.config_path
    if path is None:
        raise click.UsageError("No config file: pass --config or set LOGGY_CONFIG_PATH.")
    return path


def _build_factory() -> ModuleFactory:
    factory = ModuleFactory()
    loaded = factory.discover()
    if loaded:
        logger.debug("Loaded %d module class(es) from entry points", loaded)
    return factory


def _install_signal_handlers(runner: Runner) -> dict[int, Any]:
    """Route SIGINT/SIGTERM to a graceful runner stop; return the old handlers."""

    def _handler(signum: int, frame: Any) -> None:
        logger.info("Received signal %d, shutting down", signum)
        runner.request_stop()

    previous: dict[int, Any] = {}
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            previous[sig] = signal.signal(sig, _handler)
    return previous


# ── CLI root ─────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="loggy")
def main() -> None:
    """loggy: route log lines through configurable parsers and processors."""


# ── run ──────────────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", default="-")
@click.option(
    "--config", "-c", "config", type=click.Path(dir_okay=False, path_type=Path),
    default=None, help="Module chain config (JSON). Reloaded when it changes.",
)
@click.option("--debug", is_flag=True, help="Debug logging; modules are set up in debug mode.")
@click.option("--from-start", is_flag=True, help="Read FILE from the beginning instead of the end.")
@click.option("--no-follow", is_flag=True, help="Stop at end of FILE instead of waiting for more lines.")
@click.option("--watch-interval", type=float, default=None, help="Seconds between config file checks.")
@click.option("--poll-interval", type=float, default=None, help="Seconds between checks for new lines.")
def run(
    file: str,
    config: Path | None,
    debug: bool,
    from_start: bool,
    no_follow: bool,
    watch_interval: float | None,
    poll_interval: float | None,
) -> None:
    """Feed FILE through the module chain. Use '-' (the default) for stdin.

    \b
    Examples:
      loggy run /var/log/nginx/access.log -c loggy.json
      loggy run access.log -c loggy.json --from-start --no-follow
      tail -f app.log | loggy run -c loggy.json
    """
    settings = Settings()
    debug = debug or settings.debug
    _configure_logging("DEBUG" if debug else settings.log_level)
    config_path = _config_path(config, settings)

    chain = ModuleChain(_build_factory())
    watcher = ConfigWatcher(config_path)
    try:
        chain.update_config(watcher.load(), debug)
    except ConfigError as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        sys.exit(1)

    runner = Runner(chain, debug=debug)
    if file == "-":
        lines = stream_lines(click.get_text_stream("stdin"))
    else:
        tailer = Tailer(
            file,
            interval=poll_interval or settings.poll_interval,
            from_start=from_start,
            follow=not no_follow,
        )
        lines = tailer.lines(runner.stop_event)
    runner.feed_lines(lines)
    runner.watch_config(watcher, watch_interval or settings.watch_interval)

    previous = _install_signal_handlers(runner)
    try:
        stats = runner.run()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    err_console.print(
        f"[dim]{stats.lines} line(s), {stats.errors} error(s), "
        f"{stats.reloads} reload(s), {stats.rejected} rejected config(s)[/dim]"
    )


# ── check ────────────────────────────────────────────────────────────────────


@main.command()
@click.option(
    "--config", "-c", "config", type=click.Path(dir_okay=False, path_type=Path),
    default=None, help="Module chain config (JSON).",
)
def check(config: Path | None) -> None:
    """Validate a config file and show the resulting dispatch order.

    Modules are built and validated but not set up, so no sockets or
    connections are opened.
    """
    settings = Settings()
    config_path = _config_path(config, settings)
    chain = ModuleChain(_build_factory())
    try:
        registry = chain.validate_config(load_config(config_path))
    except ConfigError as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        sys.exit(1)
    print_registry_table(registry, title=f"{config_path.name}", console=console)
    console.print("[green]Configuration OK[/green]")


# ── modules ──────────────────────────────────────────────────────────────────


@main.command()
def modules() -> None:
    """List available module classes and their options."""
    print_modules_table(_build_factory().available(), console=console)


if __name__ == "__main__":
    main()
