from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from haven_bot.sources import MediaMetadata, SourceKind


class PipelineError(RuntimeError):
    pass


class NotFoundError(PipelineError):
    pass


class UnsupportedContentType(PipelineError):
    pass


class UnsupportedSource(PipelineError):
    def __init__(self, kind: SourceKind):
        super().__init__(f"unsupported source: {kind.value}")
        self.kind = kind


class DurationExceeded(PipelineError):
    def __init__(self, metadata: MediaMetadata, url: str, limit_seconds: int):
        super().__init__(f"duration {metadata.duration_seconds}s exceeds {limit_seconds}s")
        self.metadata = metadata
        self.url = url
        self.limit_seconds = limit_seconds


class SizeExceeded(PipelineError):
    def __init__(self, size_bytes: int, limit_bytes: int):
        super().__init__(f"size {size_bytes} bytes exceeds {limit_bytes} bytes")
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class TransferError(PipelineError):
    pass


class DeliveryError(PipelineError):
    pass
