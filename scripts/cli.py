#!/usr/bin/env python3
"""
Run Rollkeeper's slash commands from a terminal.

Every registered command becomes a click subcommand whose options come from
its pydantic option model, and responses are printed instead of posted.

Examples:
  PYTHONPATH=./src python scripts/cli.py get_data --mode replay
  PYTHONPATH=./src python scripts/cli.py get_data --mode replay --replay-file unfiltered_20250101T000000000000.json
  PYTHONPATH=./src python scripts/cli.py get_data --channel 123456789012345678
  PYTHONPATH=./src python scripts/cli.py parse_roll "$(cat message.txt)"
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from types import UnionType
from typing import Any, Literal, Union, get_args, get_origin

import click
from pydantic.fields import FieldInfo

from Rollkeeper.command_loader import load_all_commands
from Rollkeeper.commanding import Command, Invocation, all_commands
from Rollkeeper.config import load_settings
from Rollkeeper.logging import setup_logging


class PrintResponder:
    async def send(self, content: str, *, ephemeral: bool = False) -> None:
        click.echo(("(ephemeral) " if ephemeral else "") + content)


def _click_type_for(annotation: Any) -> Any:
    """Map an option annotation to a click type; ``X | None`` maps like ``X``."""
    origin = get_origin(annotation)
    if origin is Literal:
        return click.Choice([str(a) for a in get_args(annotation)], case_sensitive=False)
    if origin in (Union, UnionType):
        inner = [a for a in get_args(annotation) if a is not type(None)]
        return _click_type_for(inner[0]) if len(inner) == 1 else str
    return annotation if annotation in (int, float, bool) else str


def _option_for(name: str, field: FieldInfo) -> click.Parameter:
    flag = "--" + name.replace("_", "-")
    kind = _click_type_for(field.annotation)
    if kind is bool:
        return click.Option([flag], is_flag=True, default=bool(field.default), help=field.description)
    required = field.is_required()
    return click.Option(
        [flag],
        type=kind,
        required=required,
        default=None if required else field.default,
        help=field.description,
    )


def _params_from_model(option_model: type) -> list[click.Parameter]:
    fields: dict[str, FieldInfo] = option_model.model_fields
    # A lone required text option reads better as an argument: `parse_roll "<text>"`
    if len(fields) == 1:
        ((name, field),) = fields.items()
        if field.annotation is str and field.is_required():
            return [click.Argument([name])]
    return [_option_for(name, field) for name, field in fields.items()]


def _warn_without_config() -> None:
    if not Path("config.toml").exists() and not Path(".env").exists():
        click.secho(
            "No config.toml or .env in the current directory; using default settings.",
            fg="yellow",
            err=True,
        )


def _make_click_command(cmd: Command) -> click.Command:
    def callback(**kwargs: Any) -> None:
        _warn_without_config()
        settings = load_settings()
        setup_logging(settings)
        opts = cmd.option_model.model_validate(kwargs)
        inv = Invocation(
            name=cmd.name,
            options=kwargs,
            user_id="0",
            channel_id=None,
            guild_id=None,
            responder=PrintResponder(),
            settings=settings,
        )
        asyncio.run(cmd.handler(inv, opts))

    return click.Command(
        name=cmd.name,
        params=_params_from_model(cmd.option_model),
        callback=callback,
        help=cmd.description,
    )


def build_app() -> click.Group:
    load_all_commands()
    app = click.Group(help="Run Rollkeeper slash commands locally.")
    for cmd in all_commands().values():
        app.add_command(_make_click_command(cmd))
    return app


def main() -> None:  # pragma: no cover
    build_app()()


if __name__ == "__main__":  # pragma: no cover
    main()
