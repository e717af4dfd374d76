import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol

import discord

from haven_bot.errors import DeliveryError
from haven_bot.policy import size_advisory
from haven_bot.sources import MediaMetadata, SourceKind
from haven_bot.transfer import TransferResult, unique_temp_path

logger = logging.getLogger(__name__)


class Responder(Protocol):
    """Edits the single deferred reply bound to one interaction."""

    async def edit(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        file_path: Path | None = None,
    ) -> None: ...


def remove_quietly(path: Path) -> None:
    try:
        path.unlink()
        logger.info("Removed temporary file: %s", path.name)
    except FileNotFoundError:
        pass
    except OSError as err:
        logger.warning("Could not remove temporary file %s: %s", path, err)


@contextlib.asynccontextmanager
async def staged_file(directory: Path, prefix: str) -> AsyncIterator[Path]:
    path = unique_temp_path(directory, prefix)
    try:
        yield path
    finally:
        await asyncio.to_thread(remove_quietly, path)


def build_success_message(kind: SourceKind, metadata: MediaMetadata, result: TransferResult) -> str:
    if kind is SourceKind.TIKTOK:
        author_line = f"👤 User: {metadata.author_name or 'n/a'}"
    else:
        author_line = f"📺 Channel: {metadata.author_name or 'n/a'}"
    message = f"✅ Downloaded: **{metadata.title}**\n{author_line}"
    advisory = size_advisory(result.size_tier, result.size_bytes)
    if advisory:
        message += f"\n\n{advisory}"
    return message


async def deliver(
    responder: Responder,
    kind: SourceKind,
    metadata: MediaMetadata,
    result: TransferResult,
) -> None:
    content = build_success_message(kind, metadata, result)
    try:
        await responder.edit(content, file_path=result.local_path)
    except (discord.HTTPException, OSError) as err:
        raise DeliveryError(f"could not send {result.local_path.name}: {err}") from err
    logger.info(
        "Delivered attachment: file=%s size_bytes=%s tier=%s",
        result.local_path.name,
        result.size_bytes,
        result.size_tier.value,
    )
