import enum

from haven_bot.config import (
    CLASSIC_TIER_BYTES,
    MAX_DURATION_SECONDS,
    MAX_UPLOAD_BYTES,
    MIB,
    NORMAL_TIER_BYTES,
)
from haven_bot.errors import DurationExceeded, SizeExceeded
from haven_bot.sources import MediaMetadata


class SizeTier(enum.Enum):
    NORMAL = "normal"
    REQUIRES_CLASSIC_UPGRADE = "requires_classic_upgrade"
    REQUIRES_BOOST_OR_NITRO = "requires_boost_or_nitro"


def format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / MIB:.2f} MB"


def check_duration(metadata: MediaMetadata, url: str, limit_seconds: int = MAX_DURATION_SECONDS) -> None:
    duration = metadata.duration_seconds
    if duration is not None and duration > limit_seconds:
        raise DurationExceeded(metadata, url, limit_seconds)


def check_size(size_bytes: int, limit_bytes: int = MAX_UPLOAD_BYTES) -> SizeTier:
    if size_bytes > limit_bytes:
        raise SizeExceeded(size_bytes, limit_bytes)
    if size_bytes <= NORMAL_TIER_BYTES:
        return SizeTier.NORMAL
    if size_bytes <= CLASSIC_TIER_BYTES:
        return SizeTier.REQUIRES_CLASSIC_UPGRADE
    return SizeTier.REQUIRES_BOOST_OR_NITRO


def size_advisory(tier: SizeTier, size_bytes: int) -> str | None:
    if tier is SizeTier.REQUIRES_CLASSIC_UPGRADE:
        return f"⚠️ Video size is {format_megabytes(size_bytes)} - Discord Nitro Classic is needed to preview it inline."
    if tier is SizeTier.REQUIRES_BOOST_OR_NITRO:
        return (
            f"⚠️ Video size is {format_megabytes(size_bytes)} - Discord Nitro or a boosted server "
            "is needed to preview it inline."
        )
    return None
