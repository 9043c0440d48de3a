# responder.py
"""Replies to Discord interactions.

The endpoint answers within Discord's three-second window with a PONG or a
deferral; command output follows later through the interaction webhook.
"""

import httpx
import orjson
import structlog
from fastapi import Response

from Rollkeeper.config import Settings
from Rollkeeper.discord_schemas import DeferResponse, PongResponse

log = structlog.get_logger()

EPHEMERAL_FLAG = 1 << 6


def orjson_response(data: dict) -> Response:
    return Response(content=orjson.dumps(data), media_type="application/json")


def respond_pong() -> Response:
    return orjson_response(PongResponse(type=1).model_dump())


def respond_deferred() -> Response:
    return orjson_response(DeferResponse(type=5).model_dump())


def webhook_url(settings: Settings, application_id: str, token: str) -> str:
    base = settings.discord_webhook_url_override or settings.discord_api_base
    return f"{base.rstrip('/')}/webhooks/{application_id}/{token}"


async def followup_message(
    application_id: str,
    token: str,
    content: str,
    ephemeral: bool = False,
    *,
    settings: Settings,
) -> None:
    """Post a follow-up message for a deferred interaction.

    Raises ``httpx.HTTPError`` when the webhook cannot be reached or rejects
    the message.
    """
    url = webhook_url(settings, application_id, token)
    payload = {"content": content, "flags": EPHEMERAL_FLAG if ephemeral else 0}
    log.info(
        "discord.followup.send",
        target_url=url,
        ephemeral=ephemeral,
        content_len=len(content),
        overridden=bool(settings.discord_webhook_url_override),
    )
    async with httpx.AsyncClient(timeout=20) as client:
        try:
            r = await client.post(
                url, content=orjson.dumps(payload), headers={"Content-Type": "application/json"}
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(
                "discord.followup.http_error",
                http_status_code=e.response.status_code,
                text_preview=(e.response.text or "")[:200],
            )
            raise
        except httpx.RequestError as e:
            log.error("discord.followup.network_error", target_url=url, error=str(e))
            raise
    log.info("discord.followup.sent", http_status_code=r.status_code)


class WebhookResponder:
    """Answers one interaction through its follow-up webhook."""

    def __init__(self, application_id: str, token: str, settings: Settings):
        self.application_id = application_id
        self.token = token
        self.settings = settings

    async def send(self, content: str, *, ephemeral: bool = False) -> None:
        await followup_message(
            self.application_id, self.token, content, ephemeral, settings=self.settings
        )
