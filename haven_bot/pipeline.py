import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

import discord

from haven_bot.config import MAX_DURATION_SECONDS, MAX_UPLOAD_BYTES
from haven_bot.delivery import Responder, deliver, staged_file
from haven_bot.embeds import GENERIC_DOWNLOAD_FAILURE, TIMEOUT_MESSAGE, failure_reply
from haven_bot.errors import PipelineError, UnsupportedSource
from haven_bot.policy import check_duration, check_size
from haven_bot.sources import MediaMetadata, MediaRequest, RemoteHandle, ResolvedMedia, SourceKind
from haven_bot.transfer import TransferResult

logger = logging.getLogger(__name__)

FILE_PREFIXES = {
    SourceKind.YOUTUBE: "video",
    SourceKind.TIKTOK: "tiktok",
}


class Resolver(Protocol):
    async def resolve(self, url: str) -> ResolvedMedia: ...


class Transfer(Protocol):
    async def fetch(self, handle: RemoteHandle, destination: Path) -> int: ...


async def safe_edit(
    responder: Responder,
    content: str | None = None,
    *,
    embed: discord.Embed | None = None,
) -> None:
    try:
        await responder.edit(content, embed=embed)
    except Exception as edit_err:
        logger.info("Could not edit reply: %s", edit_err)


def _progress_message(kind: SourceKind, metadata: MediaMetadata) -> str:
    if kind is SourceKind.YOUTUBE:
        return (
            f"⏬ Downloading: **{metadata.title}**\n"
            f"⏱️ Duration: {metadata.duration_label or 'n/a'}\n\n"
            "Please wait..."
        )
    return "⏬ Downloading from the server...\n\nThis can take a minute or two for large files..."


class MediaPipeline:
    def __init__(
        self,
        resolvers: Mapping[SourceKind, Resolver],
        transfer: Transfer,
        download_dir: Path,
        *,
        max_duration_seconds: int = MAX_DURATION_SECONDS,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        timeout_seconds: float | None = None,
    ):
        self._resolvers = dict(resolvers)
        self._transfer = transfer
        self._download_dir = download_dir
        self._max_duration_seconds = max_duration_seconds
        self._max_upload_bytes = max_upload_bytes
        self._timeout_seconds = timeout_seconds

    async def run(self, url: str, responder: Responder) -> None:
        request = MediaRequest.from_url(url)
        logger.info("Download requested: kind=%s url=%s", request.source_kind.value, request.raw_url)
        try:
            if self._timeout_seconds:
                await asyncio.wait_for(self._process(request, responder), timeout=self._timeout_seconds)
            else:
                await self._process(request, responder)
        except PipelineError as err:
            logger.info("Download stopped: url=%s reason=%s: %s", request.raw_url, type(err).__name__, err)
            content, embed = failure_reply(err)
            await safe_edit(responder, content, embed=embed)
        except asyncio.TimeoutError:
            logger.warning("Download timed out after %ss: url=%s", self._timeout_seconds, request.raw_url)
            await safe_edit(responder, TIMEOUT_MESSAGE)
        except Exception:
            logger.exception("Unexpected error handling URL %s", request.raw_url)
            await safe_edit(responder, GENERIC_DOWNLOAD_FAILURE)

    async def _process(self, request: MediaRequest, responder: Responder) -> None:
        kind = request.source_kind
        resolver = self._resolvers.get(kind)
        if resolver is None:
            raise UnsupportedSource(kind)

        if kind is SourceKind.TIKTOK:
            await safe_edit(responder, "⏬ Fetching the video from TikTok...\n\nPlease wait...")
        resolved = await resolver.resolve(request.raw_url)
        metadata = resolved.metadata

        if kind is SourceKind.YOUTUBE:
            check_duration(metadata, request.raw_url, self._max_duration_seconds)

        await safe_edit(responder, _progress_message(kind, metadata))
        async with staged_file(self._download_dir, FILE_PREFIXES[kind]) as path:
            await self._transfer.fetch(resolved.handle, path)
            await safe_edit(responder, "📤 Uploading the file to Discord...\n\nPlease wait...")
            size_bytes = (await asyncio.to_thread(path.stat)).st_size
            tier = check_size(size_bytes, self._max_upload_bytes)
            result = TransferResult(local_path=path, size_bytes=size_bytes, size_tier=tier)
            await deliver(responder, kind, metadata, result)
