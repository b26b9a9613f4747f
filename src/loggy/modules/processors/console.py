"""Console processor — echo parsed fields to stdout (or stderr)."""
from __future__ import annotations

import json
from typing import Literal

import click
from pydantic import Field

from ...errors import ConfigError
from ..base import Fields, ProcessorOptions, ProcessParams
from ..placeholders import check_placeholders, substitute


class ConsoleProcessor:
    """Print one line per call.

    With a ``template`` param the rendered template is printed::

        "processParams": {"template": "#ip# requested #path#"}

    Otherwise the fields are printed as a JSON object (``format: json``,
    params included under ``"params"`` when the binding has any) or as
    ``key=value`` pairs (``format: text``).
    """

    description = "Print parsed fields or a rendered template to the console"

    class Options(ProcessorOptions):
        format: Literal["json", "text"] = Field(
            default="json",
            description="Output style when no template is given.",
        )
        stream: Literal["stdout", "stderr"] = Field(
            default="stdout",
            description="Where to write.",
        )

    def __init__(self, name: str, options: Options) -> None:
        self.name = name
        self.options = options

    def set_up(self, debug: bool) -> None:
        pass

    def validate_processor_params(
        self, output_keys: list[str], params: ProcessParams
    ) -> None:
        template = params.get("template")
        if template is None:
            return
        if not isinstance(template, str):
            raise ConfigError(f"processors.{self.name}: 'template' must be a string")
        check_placeholders(f"processors.{self.name}.template", template, output_keys)

    def process(self, fields: Fields, params: ProcessParams) -> None:
        err = self.options.stream == "stderr"
        template = params.get("template")
        if template is not None:
            click.echo(substitute(template, fields), err=err)
            return

        if self.options.format == "text":
            click.echo(" ".join(f"{k}={v}" for k, v in fields.items()), err=err)
            return

        record: dict[str, object] = dict(fields)
        if params:
            record = {"fields": fields, "params": params}
        click.echo(json.dumps(record, default=str), err=err)

    def stop(self) -> None:
        pass
