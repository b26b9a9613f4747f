"""Tests for the Runner command loop."""
from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from loggy.chain import ModuleChain
from loggy.configfile import ConfigWatcher
from loggy.errors import ConfigError
from loggy.runner import ConfigCommand, LineCommand, Runner


@pytest.fixture()
def chain() -> MagicMock:
    return MagicMock(spec=ModuleChain)


class TestExecute:
    def test_line_is_handled(self, chain: MagicMock) -> None:
        runner = Runner(chain)
        runner.execute(LineCommand("hello"))
        chain.handle.assert_called_once_with("hello")
        assert runner.stats.lines == 1

    def test_line_error_is_counted_not_raised(self, chain: MagicMock, caplog) -> None:
        chain.handle.side_effect = RuntimeError("boom")
        runner = Runner(chain)
        runner.execute(LineCommand("hello"))
        assert runner.stats.errors == 1
        assert "Error while processing line" in caplog.text

    def test_config_is_applied_with_debug(self, chain: MagicMock) -> None:
        runner = Runner(chain, debug=True)
        runner.execute(ConfigCommand({"parsers": {}}))
        chain.update_config.assert_called_once_with({"parsers": {}}, True)
        assert runner.stats.reloads == 1

    def test_rejected_config_is_counted(self, chain: MagicMock, caplog) -> None:
        chain.update_config.side_effect = ConfigError("parsers.x.class: unknown")
        runner = Runner(chain)
        runner.execute(ConfigCommand({}))
        assert runner.stats.rejected == 1
        assert runner.stats.reloads == 0
        assert "keeping the previous one" in caplog.text

    @pytest.mark.parametrize("config", [
        {"processors": {"pr1": {"class": "os.sep"}}},
        {"parsers": {"pa1": {"class": "logging.INFO", "processor": "x"}}},
        {"processors": []},
    ])
    def test_bad_reload_is_rejected_and_loop_continues(self, config: dict) -> None:
        runner = Runner(ModuleChain(), idle_timeout=0.01)
        runner.put_config({"processors": {"out": {"class": "console"}}})
        runner.put_config(config)
        runner.put_line("still running")
        runner.request_stop()

        stats = runner.run()

        assert stats.reloads == 1
        assert stats.rejected == 1
        assert stats.lines == 1
        assert stats.errors == 0


class TestRun:
    def test_commands_run_in_arrival_order(self, chain: MagicMock) -> None:
        order: list[str] = []
        chain.handle.side_effect = lambda line: order.append(line)
        chain.update_config.side_effect = lambda config, debug: order.append("config")
        runner = Runner(chain, idle_timeout=0.01)
        runner.put_line("a")
        runner.put_config({})
        runner.put_line("b")
        runner.request_stop()

        stats = runner.run()

        assert order == ["a", "config", "b"]
        assert stats.lines == 2
        assert stats.reloads == 1
        chain.stop.assert_called_once()

    def test_feed_lines_drains_and_stops(self, chain: MagicMock) -> None:
        runner = Runner(chain, idle_timeout=0.01)
        thread = runner.feed_lines(iter(["x", "y", "z"]))

        stats = runner.run()
        thread.join(timeout=1)

        assert thread.daemon
        assert not thread.is_alive()

        assert stats.lines == 3
        assert [c.args[0] for c in chain.handle.call_args_list] == ["x", "y", "z"]
        chain.stop.assert_called_once()

    def test_failing_line_source_still_stops(self, chain: MagicMock, caplog) -> None:
        def _lines():
            yield "first"
            raise OSError("disk gone")

        runner = Runner(chain, idle_timeout=0.01)
        runner.feed_lines(_lines())

        assert runner.run().lines == 1
        assert "Line source failed" in caplog.text

    def test_chain_stopped_even_if_execute_raises(self, chain: MagicMock) -> None:
        runner = Runner(chain, idle_timeout=0.01)
        runner.put_line("x")
        runner.execute = MagicMock(side_effect=KeyboardInterrupt)  # type: ignore[method-assign]

        with pytest.raises(KeyboardInterrupt):
            runner.run()

        chain.stop.assert_called_once()
        assert runner.stop_event.is_set()

    def test_watch_config_queues_changes(self, chain: MagicMock) -> None:
        watcher = MagicMock(spec=ConfigWatcher)
        watcher.poll.side_effect = [{"parsers": {}}] + [None] * 1000
        applied = threading.Event()
        runner = Runner(chain, idle_timeout=0.01)

        def _update(config, debug) -> None:
            applied.set()
            runner.request_stop()

        chain.update_config.side_effect = _update
        runner.watch_config(watcher, interval=0.01)

        stats = runner.run()

        assert applied.is_set()
        assert stats.reloads == 1
        chain.update_config.assert_called_once_with({"parsers": {}}, False)
