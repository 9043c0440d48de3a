"""JSON file sink for harvested messages.

Batches are written as one indented JSON array per file, in harvest order.
Field names match the files earlier harvests produced, including the
``filterd_contents`` spelling, so old and new batches stay interchangeable.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import orjson
import structlog

from Rollkeeper.errors import CorruptBatch, ReplayFileMissing, ReplayFileOutsideStore
from Rollkeeper.records import MessageRecord
from Rollkeeper.rolls.types import DiceRollRequest

log = structlog.get_logger()

UNFILTERED_PREFIX = "unfiltered"
CLEANED_PREFIX = "cleaned"


def record_to_json(record: MessageRecord) -> dict:
    return {
        "message_id": record.message_id,
        "user_id": record.author_user_id,
        "unfiltered_contents": record.raw_content,
        "date": record.timestamp,
        "filterd_contents": record.parsed.to_dict() if record.parsed is not None else None,
    }


def record_from_json(data: dict) -> MessageRecord:
    parsed = data.get("filterd_contents")
    return MessageRecord(
        message_id=int(data["message_id"]),
        author_user_id=int(data["user_id"]),
        raw_content=data["unfiltered_contents"],
        timestamp=datetime.fromisoformat(data["date"]),
        parsed=DiceRollRequest.from_dict(parsed) if parsed is not None else None,
    )


class RecordStore:
    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path_for(self, prefix: str, now: datetime | None = None) -> Path:
        stamp = (now or datetime.now().astimezone()).strftime("%Y%m%dT%H%M%S%f")
        return self.directory / f"{prefix}_{stamp}.json"

    def write(self, records: Iterable[MessageRecord], path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record_to_json(r) for r in records]
        path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        log.info("store.batch.written", path=str(path), records=len(payload))
        return path

    def write_unfiltered(self, records: Iterable[MessageRecord], *, now: datetime | None = None) -> Path:
        return self.write(records, self._path_for(UNFILTERED_PREFIX, now))

    def write_cleaned(self, records: Iterable[MessageRecord], *, now: datetime | None = None) -> Path:
        return self.write(records, self._path_for(CLEANED_PREFIX, now))

    def resolve(self, path: str | Path) -> Path:
        """Locate a saved batch; relative names are taken from the store directory.

        Paths that resolve outside the store directory are refused.
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.directory / path
        resolved = path.resolve()
        if not resolved.is_relative_to(self.directory.resolve()):
            raise ReplayFileOutsideStore(str(path))
        if not resolved.is_file():
            raise ReplayFileMissing(str(path))
        return resolved

    def load(self, path: str | Path) -> list[MessageRecord]:
        path = self.resolve(path)
        try:
            records = [record_from_json(d) for d in orjson.loads(path.read_bytes())]
        except orjson.JSONDecodeError as e:
            raise CorruptBatch(str(path), f"invalid JSON ({e})") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CorruptBatch(str(path), f"unexpected record shape ({e!r})") from e
        log.info("store.batch.loaded", path=str(path), records=len(records))
        return records

    def latest_unfiltered(self) -> Path | None:
        """Most recent unfiltered batch in the store directory, if any."""
        candidates = sorted(self.directory.glob(f"{UNFILTERED_PREFIX}_*.json"))
        return candidates[-1] if candidates else None
