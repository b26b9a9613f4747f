"""Runner — the single owner of a ModuleChain.

Lines and configuration updates arrive from different threads (the tailer,
the config watcher) but the chain must see them one at a time.  Producers
put commands on a queue; run() consumes them in arrival order on the calling
thread:

    runner = Runner(chain)
    runner.feed_lines(Tailer(path).lines(runner.stop_event))
    runner.watch_config(ConfigWatcher(config_path), interval=5.0)
    stats = runner.run()          # returns after request_stop()

Per-line processor errors are logged and counted, never fatal.  A rejected
configuration is logged and the previous one stays live.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from .chain import ModuleChain
from .configfile import ConfigWatcher
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineCommand:
    line: str


@dataclass(frozen=True)
class ConfigCommand:
    config: Mapping[str, Any]


Command = Union[LineCommand, ConfigCommand]


@dataclass
class RunStats:
    """Counters reported when the runner stops."""

    lines: int = 0
    errors: int = 0
    reloads: int = 0
    rejected: int = 0


class Runner:
    """Serialize line handling and reconfiguration for one chain."""

    def __init__(
        self,
        chain: ModuleChain,
        debug: bool = False,
        idle_timeout: float = 0.2,
    ) -> None:
        self.chain = chain
        self.debug = debug
        self.idle_timeout = idle_timeout
        self.stats = RunStats()
        self.queue: queue.Queue[Command] = queue.Queue()
        self.stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def put_line(self, line: str) -> None:
        self.queue.put(LineCommand(line))

    def put_config(self, config: Mapping[str, Any]) -> None:
        self.queue.put(ConfigCommand(config))

    def request_stop(self) -> None:
        """Ask run() to return once the queue is drained.

        Only sets an event, so it is safe to call from a signal handler.
        """
        self.stop_event.set()

    def feed_lines(self, lines: Iterable[str], stop_when_done: bool = True) -> threading.Thread:
        """Queue every line of lines from a daemon thread."""

        def _feed() -> None:
            try:
                for line in lines:
                    self.put_line(line)
                    if self.stop_event.is_set():
                        break
            except Exception:
                logger.exception("Line source failed")
            finally:
                if stop_when_done:
                    self.request_stop()

        return self._start(_feed, "loggy-lines")

    def watch_config(self, watcher: ConfigWatcher, interval: float) -> threading.Thread:
        """Poll watcher every interval seconds and queue changed documents."""

        def _watch() -> None:
            while not self.stop_event.wait(interval):
                doc = watcher.poll()
                if doc is not None:
                    self.put_config(doc)

        return self._start(_watch, "loggy-config")

    def _start(self, target: Any, name: str) -> threading.Thread:
        thread = threading.Thread(target=target, name=name, daemon=True)
        thread.start()
        return thread

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> None:
        if isinstance(command, ConfigCommand):
            try:
                self.chain.update_config(command.config, self.debug)
            except ConfigError as exc:
                self.stats.rejected += 1
                logger.error("Configuration rejected, keeping the previous one: %s", exc)
            else:
                self.stats.reloads += 1
            return

        self.stats.lines += 1
        try:
            self.chain.handle(command.line)
        except Exception:
            self.stats.errors += 1
            logger.exception("Error while processing line %r", command.line[:200])

    def run(self) -> RunStats:
        """Consume commands until request_stop() and an empty queue, then stop the chain."""
        try:
            while True:
                try:
                    command = self.queue.get(timeout=self.idle_timeout)
                except queue.Empty:
                    # Producers stop putting before they set the event
                    if self.stop_event.is_set() and self.queue.empty():
                        break
                    continue
                self.execute(command)
        finally:
            self.stop_event.set()
            self.chain.stop()
        logger.info(
            "Runner stopped: %d line(s), %d error(s), %d reload(s), %d rejected",
            self.stats.lines,
            self.stats.errors,
            self.stats.reloads,
            self.stats.rejected,
        )
        return self.stats
