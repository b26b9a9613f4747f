"""Shared pytest fixtures and module doubles for loggy tests."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

_PARSER_ATTRS = ["name", "set_up", "parse", "run_always", "output_keys"]
_PROCESSOR_ATTRS = ["name", "set_up", "process", "stop", "validate_processor_params"]


def make_parser(
    name: str = "parser",
    output: dict[str, str] | None = None,
    run_always: bool = False,
    output_keys: list[str] | None = None,
) -> MagicMock:
    """A parser double: parse() returns output (None = no match)."""
    parser = MagicMock(spec=_PARSER_ATTRS)
    parser.name = name
    parser.run_always = run_always
    parser.output_keys = list(output_keys or [])
    parser.parse.return_value = output
    return parser


def make_processor(name: str = "processor") -> MagicMock:
    processor = MagicMock(spec=_PROCESSOR_ATTRS)
    processor.name = name
    return processor


def processor_config(clazz: str, **options: Any) -> dict[str, Any]:
    return {"class": clazz, **options}


def parser_config(
    clazz: str, processor: str, process_params: dict[str, Any] | None = None, **options: Any
) -> dict[str, Any]:
    return {
        "class": clazz,
        "processor": processor,
        "processParams": {} if process_params is None else process_params,
        **options,
    }


def add_module(config: dict[str, Any], section: str, name: str, module_config: dict[str, Any]) -> None:
    config.setdefault(section, {})[name] = module_config


@pytest.fixture()
def tmp_log_file(tmp_path: Path):
    """Return a factory that creates temporary log files."""

    def _make(lines: list[str], name: str = "test.log") -> Path:
        p = tmp_path / name
        p.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return p

    return _make


@pytest.fixture()
def tmp_config_file(tmp_path: Path):
    """Return a factory that writes a JSON config document to disk."""

    def _make(doc: dict[str, Any], name: str = "loggy.json") -> Path:
        p = tmp_path / name
        p.write_text(json.dumps(doc), encoding="utf-8")
        return p

    return _make


@pytest.fixture()
def access_log_lines() -> list[str]:
    return [
        "GET /api/v1/health 200 3",
        "POST /api/v1/jobs 201 12",
        "GET /missing 404 1",
    ]
