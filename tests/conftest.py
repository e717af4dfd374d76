from __future__ import annotations

import asyncio
import time
from pathlib import Path
from types import SimpleNamespace

import discord
import pytest
import requests

from haven_bot.sources import MediaMetadata, RemoteHandle, ResolvedMedia


def http_error(status: int = 404, reason: str = "Not Found") -> discord.HTTPException:
    response = SimpleNamespace(status=status, reason=reason)
    if status == 404:
        return discord.NotFound(response, "Unknown")
    return discord.HTTPException(response, "failure")


class FakeResponder:
    def __init__(self, fail_on_attachment: Exception | None = None):
        self.edits: list[dict] = []
        self._fail_on_attachment = fail_on_attachment

    async def edit(self, content=None, *, embed=None, file_path: Path | None = None) -> None:
        self.edits.append(
            {
                "content": content,
                "embed": embed,
                "file_path": file_path,
                "file_existed": file_path.exists() if file_path else None,
            }
        )
        if file_path is not None and self._fail_on_attachment is not None:
            raise self._fail_on_attachment

    @property
    def last(self) -> dict:
        return self.edits[-1]

    @property
    def attachments(self) -> list[Path]:
        return [edit["file_path"] for edit in self.edits if edit["file_path"] is not None]


class FakeResolver:
    def __init__(self, resolved: ResolvedMedia | None = None, error: Exception | None = None):
        self.resolved = resolved
        self.error = error
        self.calls: list[str] = []

    async def resolve(self, url: str) -> ResolvedMedia:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.resolved


class FakeTransfer:
    def __init__(self, size_bytes: int = 1024, error: Exception | None = None):
        self.size_bytes = size_bytes
        self.error = error
        self.destinations: list[Path] = []

    async def fetch(self, handle: RemoteHandle, destination: Path) -> int:
        self.destinations.append(destination)
        if self.error is not None:
            destination.write_bytes(b"partial")
            raise self.error
        # Sparse file: reports the full size without writing it.
        with destination.open("wb") as output:
            output.truncate(self.size_bytes)
        return self.size_bytes


def resolved_media(title: str = "Clip", duration: float | None = 120, author: str | None = "Channel") -> ResolvedMedia:
    return ResolvedMedia(
        metadata=MediaMetadata(
            title=title,
            duration_seconds=duration,
            duration_label="2:00" if duration == 120 else None,
            author_name=author,
            thumbnail_url="https://img.example/thumb.jpg",
        ),
        handle=RemoteHandle(url="https://cdn.example/video.mp4"),
    )


@pytest.fixture
def responder() -> FakeResponder:
    return FakeResponder()


async def wait_until(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    """Poll until a worker thread has settled; returns the final predicate value."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            return predicate()
        await asyncio.sleep(interval)
    return True


class FakeStreamResponse:
    def __init__(self, chunks=(), status_code=200, fail_after=None, chunk_delay=0.0):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.fail_after = fail_after
        self.chunk_delay = chunk_delay
        self.yielded = 0
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=1):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise requests.ConnectionError("connection reset by peer")
            time.sleep(self.chunk_delay)
            self.yielded += 1
            yield chunk


class FakeStreamSession:
    def __init__(self, response, delay=0.0):
        self.response = response
        self.delay = delay
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        time.sleep(self.delay)
        return self.response
