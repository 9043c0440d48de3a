"""Channel history source backed by the Discord REST API.

Pages backwards from the channel's newest message in pages of at most 100,
sleeping briefly between pages, until Discord returns an empty page.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import httpx
import structlog

from Rollkeeper.config import Settings
from Rollkeeper.discord_schemas import Channel, Message
from Rollkeeper.errors import DiscordUnavailable, HarvestConfigError, MissingInteractionMetadata
from Rollkeeper.metrics import inc_counter
from Rollkeeper.records import MessageRecord

log = structlog.get_logger()

MAX_PAGE_SIZE = 100


def to_record(message: Message) -> MessageRecord:
    """Build a record for a dice-bot message, attributing it to the invoking user.

    Raises MissingInteractionMetadata when Discord did not say who invoked
    the bot.
    """
    user = None
    if message.interaction_metadata is not None:
        user = message.interaction_metadata.user
    if (user is None or user.id is None) and message.interaction is not None:
        user = message.interaction.user
    if user is None or user.id is None:
        raise MissingInteractionMetadata(message.id)
    return MessageRecord(
        message_id=int(message.id),
        author_user_id=int(user.id),
        raw_content=message.content,
        timestamp=message.timestamp,
    )


class DiscordHistory:
    """Reads channel history with a bot token.

    An ``httpx.AsyncClient`` may be injected (tests use a MockTransport);
    otherwise one is created and owned by this instance.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        if settings.discord_bot_token is None:
            raise HarvestConfigError("discord_bot_token is required to read channel history")
        self.page_size = min(settings.harvest_page_size, MAX_PAGE_SIZE)
        self.page_delay_seconds = settings.harvest_page_delay_seconds
        self._owns_client = client is None
        headers = {"Authorization": f"Bot {settings.discord_bot_token.get_secret_value()}"}
        if client is None:
            client = httpx.AsyncClient(
                base_url=settings.discord_api_base.rstrip("/"),
                timeout=20,
                headers=headers,
            )
        else:
            client.headers.update(headers)
        self._client = client

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> DiscordHistory:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get(self, path: str, params: dict | None = None) -> httpx.Response:
        try:
            r = await self._client.get(path, params=params)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.error(
                "discord.history.http_error",
                path=path,
                http_status_code=status,
                text_preview=(e.response.text or "")[:200],
            )
            raise DiscordUnavailable(path, f"HTTP {status}", status_code=status) from e
        except httpx.RequestError as e:
            log.error("discord.history.network_error", path=path, error=str(e))
            raise DiscordUnavailable(path, type(e).__name__) from e
        return r

    async def fetch_channel(self, channel_id: str) -> Channel:
        r = await self._get(f"/channels/{channel_id}")
        return Channel.model_validate(r.json())

    async def fetch_page(self, channel_id: str, before: str, limit: int | None = None) -> list[Message]:
        """Up to ``limit`` messages older than ``before``, newest first."""
        params = {"before": before, "limit": limit or self.page_size}
        r = await self._get(f"/channels/{channel_id}/messages", params=params)
        return [Message.model_validate(m) for m in r.json()]

    async def iter_history(self, channel_id: str) -> AsyncIterator[list[Message]]:
        channel = await self.fetch_channel(channel_id)
        if not channel.last_message_id:
            log.info("discord.history.empty_channel", channel_id=channel_id)
            return
        cursor = channel.last_message_id
        while True:
            page = await self.fetch_page(channel_id, cursor)
            if not page:
                break
            inc_counter("history.pages")
            log.debug("discord.history.page", channel_id=channel_id, size=len(page), before=cursor)
            yield page
            cursor = page[-1].id
            await asyncio.sleep(self.page_delay_seconds)

    async def harvest(self, channel_id: str, bot_user_id: int) -> tuple[list[Message], int]:
        """Collect every message the dice bot posted in the channel.

        Returns the bot's messages and the number of messages read overall.
        """
        bot_messages: list[Message] = []
        total_read = 0
        wanted = str(bot_user_id)
        async for page in self.iter_history(channel_id):
            total_read += len(page)
            bot_messages.extend(m for m in page if m.author.id == wanted)
        inc_counter("history.messages_read", total_read)
        log.info(
            "discord.history.harvested",
            channel_id=channel_id,
            total_read=total_read,
            bot_messages=len(bot_messages),
        )
        return bot_messages, total_read
