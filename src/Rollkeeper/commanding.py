# src/Rollkeeper/commanding.py
"""Slash command registry shared by the interactions endpoint and the CLI."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel

from Rollkeeper.config import Settings


class Responder(Protocol):
    async def send(self, content: str, *, ephemeral: bool = False) -> None: ...


@dataclass
class Invocation:
    """Who ran a command, where, and how to answer them."""

    name: str
    options: dict[str, Any]
    user_id: str
    channel_id: str | None
    guild_id: str | None
    responder: Responder
    settings: Settings | None = None


class Option(BaseModel):
    """Validated options of one command; field descriptions become help text."""


Handler = Callable[[Invocation, Any], Awaitable[None]]


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    option_model: type[Option]
    handler: Handler


_commands: dict[str, Command] = {}


def slash_command(name: str, description: str, option_model: type[Option] = Option):
    """Register the decorated coroutine as the handler of ``/name``."""

    def register(func: Handler) -> Handler:
        if name in _commands:
            raise ValueError(f"command /{name} registered twice")
        _commands[name] = Command(name, description, option_model, func)
        return func

    return register


def all_commands() -> dict[str, Command]:
    return dict(_commands)


def find_command(name: str) -> Command | None:
    return _commands.get(name)
