#!/usr/bin/env python3
"""
Discord Command Management Script

Registers, unregisters or lists the Rollkeeper slash commands, globally or
for one guild.

Usage:
  python scripts/register_commands.py --status [--global|--guild [GUILD_ID]]
  python scripts/register_commands.py --register [--global|--guild [GUILD_ID]]
  python scripts/register_commands.py --unregister [--global|--guild [GUILD_ID]]

Environment Variables (read from .env.local, falling back to .env):
  - DISCORD_APPLICATION_ID or DISCORD_APP_ID: The application ID of the bot.
  - DISCORD_BOT_TOKEN: The bot token for authentication.
  - DISCORD_GUILD_ID (optional): The guild ID for guild-scoped commands.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Literal, get_args, get_origin

import httpx
import orjson
from dotenv import load_dotenv
from pydantic.fields import FieldInfo

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from Rollkeeper.command_loader import load_all_commands  # noqa: E402
from Rollkeeper.commanding import all_commands  # noqa: E402

API_BASE = "https://discord.com/api/v10"

# Discord API constants
CMD_CHAT_INPUT = 1
OPT_STRING = 3
OPT_INTEGER = 4
OPT_BOOLEAN = 5
OPT_NUMBER = 10


def _base_annotation(ann: Any) -> Any:
    # Optional[X] -> X
    args = [a for a in get_args(ann) if a is not type(None)]
    if get_origin(ann) is not Literal and len(args) == 1:
        return args[0]
    return ann


def _map_pydantic_to_discord(field_name: str, f: FieldInfo) -> dict[str, Any]:
    ann = _base_annotation(f.annotation)
    if ann is int:
        t = OPT_INTEGER
    elif ann is float:
        t = OPT_NUMBER
    elif ann is bool:
        t = OPT_BOOLEAN
    else:
        t = OPT_STRING
    desc = (f.description or "").strip()
    opt: dict[str, Any] = {
        "name": field_name,
        "description": desc or field_name,
        "type": t,
        "required": f.is_required(),
    }
    if get_origin(ann) is Literal:
        opt["choices"] = [{"name": str(v), "value": v} for v in get_args(ann)]
    return opt


def build_commands_payload() -> list[dict[str, Any]]:
    load_all_commands()
    payload: list[dict[str, Any]] = []
    for cmd in all_commands().values():
        options = [_map_pydantic_to_discord(n, f) for n, f in cmd.option_model.model_fields.items()]
        # Discord requires required options to precede optional ones
        options.sort(key=lambda o: not o["required"])
        payload.append(
            {
                "name": cmd.name,
                "description": cmd.description,
                "type": CMD_CHAT_INPUT,
                "options": options,
            }
        )
    return payload


def _get_command_url(app_id: str, scope: str, guild_id: str | None = None) -> str:
    base_url = f"{API_BASE}/applications/{app_id}"
    if scope == "global":
        return f"{base_url}/commands"
    if scope == "guild" and guild_id:
        return f"{base_url}/guilds/{guild_id}/commands"
    raise ValueError("Invalid scope or missing guild_id for guild commands.")


async def _fetch_commands(client: httpx.AsyncClient, url: str, headers: dict) -> list[dict]:
    response = await client.get(url, headers=headers)
    response.raise_for_status()
    return response.json()


def print_status(local_commands: list[dict], registered: list[dict], scope: str) -> None:
    print(f"\nStatus for {scope} commands:")
    names = {rc["name"] for rc in registered}
    for cmd in local_commands:
        mark = "registered" if cmd["name"] in names else "missing"
        print(f"  /{cmd['name']:<12} {mark:<11} {cmd.get('description', '')}")


async def _register(client, url, headers, local_commands) -> None:
    for cmd in local_commands:
        # POST upserts by name, so re-registering updates options in place
        response = await client.post(url, headers=headers, content=orjson.dumps(cmd))
        if response.status_code in (200, 201):
            print(f"Registered: {cmd['name']} ({url})")
        else:
            print(f"Failed to register {cmd['name']} ({url}). Status: {response.status_code}")


async def _unregister(client, url, headers, local_commands) -> None:
    local_names = {lc["name"] for lc in local_commands}
    for cmd in await _fetch_commands(client, url, headers):
        if cmd["name"] not in local_names:
            continue
        response = await client.delete(f"{url}/{cmd['id']}", headers=headers)
        if response.status_code == 204:
            print(f"Unregistered: {cmd['name']} ({url})")
        else:
            print(f"Failed to unregister {cmd['name']} ({url}). Status: {response.status_code}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Manage Discord slash commands.")
    parser.add_argument("--status", action="store_true", help="Check the status of commands.")
    parser.add_argument("--register", action="store_true", help="Register commands.")
    parser.add_argument("--unregister", action="store_true", help="Unregister commands.")
    parser.add_argument("--global", action="store_true", dest="is_global", help="Apply action to global commands.")
    parser.add_argument("--guild", nargs="?", const=True, dest="is_guild", help="Apply action to guild commands. Optionally specify a guild ID.")
    args = parser.parse_args()

    env_local = project_root / ".env.local"
    load_dotenv(dotenv_path=env_local if env_local.exists() else project_root / ".env")
    try:
        app_id = os.environ.get("DISCORD_APPLICATION_ID") or os.environ["DISCORD_APP_ID"]
        bot_token = os.environ["DISCORD_BOT_TOKEN"]
    except KeyError as e:
        print(f"Error: Missing required environment variable: {e}")
        sys.exit(1)

    if not args.is_global and not args.is_guild:
        args.is_global = True

    guild_id = os.environ.get("DISCORD_GUILD_ID") if args.is_guild is True else args.is_guild
    if args.is_guild and not guild_id:
        print("Error: DISCORD_GUILD_ID must be set for guild-scoped commands.")
        sys.exit(1)

    urls = {}
    if args.is_global:
        urls["Global"] = _get_command_url(app_id, "global")
    if guild_id:
        urls["Guild"] = _get_command_url(app_id, "guild", guild_id)

    headers = {"Authorization": f"Bot {bot_token}", "Content-Type": "application/json"}
    local_commands = build_commands_payload()

    async with httpx.AsyncClient(timeout=10) as client:
        for scope, url in urls.items():
            if args.register:
                await _register(client, url, headers, local_commands)
            elif args.unregister:
                await _unregister(client, url, headers, local_commands)
            if args.register or args.unregister:
                await asyncio.sleep(2)  # Add delay to alleviate rate-limiting
            print_status(local_commands, await _fetch_commands(client, url, headers), scope)


if __name__ == "__main__":
    asyncio.run(main())
