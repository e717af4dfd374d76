import asyncio
import dataclasses
import logging
import os
import secrets
import threading
import time
from pathlib import Path

import requests

from haven_bot.errors import TransferError
from haven_bot.policy import SizeTier
from haven_bot.sources import RemoteHandle

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclasses.dataclass(frozen=True)
class TransferResult:
    local_path: Path
    size_bytes: int
    size_tier: SizeTier


def unique_temp_path(directory: Path, prefix: str, ext: str = "mp4") -> Path:
    return directory / f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}.{ext}"


class StreamTransfer:
    def __init__(self, session: requests.Session, timeout_seconds: float = 300.0):
        self._session = session
        self._timeout_seconds = timeout_seconds

    def _stream(self, handle: RemoteHandle, destination: Path, cancelled: threading.Event) -> int:
        written = 0
        with self._session.get(
            handle.url,
            headers=handle.headers or None,
            stream=True,
            timeout=self._timeout_seconds,
        ) as response:
            response.raise_for_status()
            if cancelled.is_set():
                return written
            with destination.open("wb") as output:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if cancelled.is_set():
                        break
                    if not chunk:
                        continue
                    output.write(chunk)
                    written += len(chunk)
                else:
                    output.flush()
                    os.fsync(output.fileno())
        return written

    def _copy(self, handle: RemoteHandle, destination: Path, cancelled: threading.Event) -> int:
        try:
            return self._stream(handle, destination, cancelled)
        finally:
            # The awaiting side may have removed the path before this thread
            # created it, so an abandoned copy cleans up after itself.
            if cancelled.is_set():
                destination.unlink(missing_ok=True)
                logger.info("Transfer abandoned after cancellation: destination=%s", destination.name)

    async def fetch(self, handle: RemoteHandle, destination: Path) -> int:
        started = time.monotonic()
        cancelled = threading.Event()
        try:
            written = await asyncio.to_thread(self._copy, handle, destination, cancelled)
        except asyncio.CancelledError:
            # to_thread cannot stop the worker; it watches this flag between chunks.
            cancelled.set()
            raise
        except (requests.RequestException, OSError) as err:
            logger.warning("Transfer failed: destination=%s err=%s", destination.name, err)
            raise TransferError(f"transfer failed: {err}") from err
        logger.info(
            "Transfer complete: destination=%s size_bytes=%s elapsed=%.2fs",
            destination.name,
            written,
            time.monotonic() - started,
        )
        return written
