import asyncio
import dataclasses
import datetime
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ControlPanelRecord:
    message_id: int
    channel_id: int
    guild_id: int | None
    created_at: str

    @classmethod
    def now(cls, message_id: int, channel_id: int, guild_id: int | None) -> "ControlPanelRecord":
        created_at = datetime.datetime.now(datetime.timezone.utc).isoformat()
        return cls(message_id=message_id, channel_id=channel_id, guild_id=guild_id, created_at=created_at)

    def to_json(self) -> dict:
        return {
            "messageId": str(self.message_id),
            "channelId": str(self.channel_id),
            "guildId": str(self.guild_id) if self.guild_id is not None else None,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_json(cls, raw: dict) -> "ControlPanelRecord":
        guild_id = raw.get("guildId")
        return cls(
            message_id=int(raw["messageId"]),
            channel_id=int(raw["channelId"]),
            guild_id=int(guild_id) if guild_id else None,
            created_at=str(raw.get("createdAt") or ""),
        )


class PanelRegistry:
    """Append-only list of posted control panels, stored as JSON.

    Appends are read-modify-write without locking; two panel setups racing
    can drop one record.
    """

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {"controlPanels": []}
        except (OSError, ValueError) as err:
            logger.warning("Could not read panel registry %s: %s", self.path, err)
            return {"controlPanels": []}
        if not isinstance(data, dict):
            return {"controlPanels": []}
        if not isinstance(data.get("controlPanels"), list):
            if "controlPanels" in data:
                logger.warning("Resetting non-list controlPanels in %s", self.path)
            data["controlPanels"] = []
        return data

    def _write(self, data: dict) -> None:
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def _load_sync(self) -> list[ControlPanelRecord]:
        records = []
        for raw in self._read()["controlPanels"]:
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed panel record %r", raw)
                continue
            try:
                records.append(ControlPanelRecord.from_json(raw))
            except (KeyError, TypeError, ValueError) as err:
                logger.warning("Skipping malformed panel record %r: %s", raw, err)
        return records

    def _append_sync(self, record: ControlPanelRecord) -> None:
        data = self._read()
        data["controlPanels"].append(record.to_json())
        self._write(data)

    async def load(self) -> list[ControlPanelRecord]:
        return await asyncio.to_thread(self._load_sync)

    async def append(self, record: ControlPanelRecord) -> None:
        await asyncio.to_thread(self._append_sync, record)
        logger.info(
            "Control panel recorded: message_id=%s channel_id=%s guild_id=%s",
            record.message_id,
            record.channel_id,
            record.guild_id,
        )
