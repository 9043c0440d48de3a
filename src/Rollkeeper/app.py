"""FastAPI app entrypoint for Rollkeeper.

Discord posts every interaction to ``/interactions``. Requests are checked
against the application's Ed25519 public key; PINGs are answered inline,
and slash commands are deferred and run in the background, replying
through the interaction webhook.
"""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from pydantic import ValidationError
from structlog.contextvars import bind_contextvars, clear_contextvars

from Rollkeeper.command_loader import load_all_commands
from Rollkeeper.commanding import Invocation, all_commands, find_command
from Rollkeeper.config import load_settings
from Rollkeeper.crypto import verify_ed25519
from Rollkeeper.discord_schemas import Interaction
from Rollkeeper.logging import redact_settings, setup_logging
from Rollkeeper.metrics import get_counters, inc_counter
from Rollkeeper.responder import WebhookResponder, respond_deferred, respond_pong

SIGNATURE_HEADER = "X-Signature-Ed25519"
TIMESTAMP_HEADER = "X-Signature-Timestamp"
PING = 1
APPLICATION_COMMAND = 2

log = structlog.get_logger()
settings = load_settings()
setup_logging(settings)

# Running command tasks; the event loop only keeps weak references
_background_tasks: set[asyncio.Task] = set()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    modules = load_all_commands()
    log.info(
        "app.startup",
        config=redact_settings(settings),
        command_modules=modules,
        commands=sorted(all_commands()),
    )
    yield
    if _background_tasks:
        await asyncio.gather(*_background_tasks, return_exceptions=True)


app = FastAPI(title="Rollkeeper", lifespan=lifespan)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Bind a fresh request_id to the log context and log the request's duration."""
    bind_contextvars(request_id=str(uuid.uuid4()))
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        log.info(
            "http.request.completed",
            http_path=request.url.path,
            http_method=request.method,
            http_status_code=status_code,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        clear_contextvars()


@app.post("/interactions")
async def interactions(request: Request):
    raw = await request.body()
    sig = request.headers.get(SIGNATURE_HEADER)
    ts = request.headers.get(TIMESTAMP_HEADER)
    if not sig or not ts:
        log.error("discord.request.missing_signature", has_sig=bool(sig), has_ts=bool(ts))
        raise HTTPException(status_code=401, detail="missing signature headers")
    if not verify_ed25519(settings.discord_public_key, ts, raw, sig):
        log.error("discord.request.bad_signature", ts=ts)
        raise HTTPException(status_code=401, detail="bad signature")

    try:
        inter = Interaction.model_validate_json(raw)
    except ValidationError as err:
        log.error(
            "discord.request.parse_error",
            raw_body_preview=raw[:200].decode("utf-8", errors="replace"),
        )
        raise HTTPException(status_code=400, detail="invalid interaction payload") from err
    log.info("discord.request.validated", interaction_id=inter.id, interaction_type=inter.type)

    if inter.type == PING:
        return respond_pong()
    if inter.type == APPLICATION_COMMAND and inter.data is not None and inter.data.name:
        task = asyncio.create_task(_dispatch_command(inter))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
    return respond_deferred()


def _command_options(inter: Interaction) -> dict[str, Any]:
    raw = inter.data.options if inter.data is not None else None
    return {o["name"]: o.get("value") for o in raw or [] if isinstance(o.get("name"), str)}


def _infer_ids_from_interaction(inter: Interaction) -> tuple[int, int, int]:
    """(guild_id, channel_id, user_id), 0 where Discord left one out."""
    guild_id = inter.guild_id or (inter.guild.id if inter.guild else None)
    channel_id = inter.channel_id or (inter.channel.id if inter.channel else None)
    # Guild invocations carry the user under member; DMs carry it directly
    user = inter.member.user if inter.member and inter.member.user else inter.user
    user_id = user.id if user else None
    return int(guild_id or 0), int(channel_id or 0), int(user_id or 0)


async def _dispatch_command(inter: Interaction) -> None:
    name = inter.data.name if inter.data is not None else None
    cmd = find_command(name or "")
    if cmd is None:
        inc_counter("command.unknown")
        log.warning("command.unknown", command_name=name)
        return

    options = _command_options(inter)
    guild_id, channel_id, user_id = _infer_ids_from_interaction(inter)
    responder = WebhookResponder(inter.application_id, inter.token, settings)
    try:
        opts = cmd.option_model.model_validate(options)
    except ValidationError as err:
        inc_counter("command.options_error")
        log.warning("command.options_error", command_name=name, errors=err.errors())
        await responder.send(f"❌ Invalid options for `{name}`.", ephemeral=True)
        return

    inv = Invocation(
        name=cmd.name,
        options=options,
        user_id=str(user_id),
        channel_id=str(channel_id) if channel_id else None,
        guild_id=str(guild_id) if guild_id else None,
        responder=responder,
        settings=settings,
    )
    bind_contextvars(command_name=cmd.name, user_id=inv.user_id, guild_id=inv.guild_id)
    log.info("command.initiated", options=options)
    start = time.perf_counter()
    status = "success"
    try:
        await cmd.handler(inv, opts)
    except Exception:
        status = "error"
        log.error("command.error", exc_info=True)
        raise
    finally:
        inc_counter(f"command.{status}")
        log.info(
            "command.completed",
            status=status,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )


@app.get("/healthz")
async def healthz():
    try:
        load_all_commands()
    except Exception as err:
        raise HTTPException(status_code=500, detail=f"unhealthy: {err}") from err
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not settings.metrics_endpoint_enabled:
        raise HTTPException(status_code=404, detail="metrics disabled")
    return get_counters()
