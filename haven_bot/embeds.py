import datetime

import discord

from haven_bot.config import MIB
from haven_bot.errors import (
    DurationExceeded,
    NotFoundError,
    PipelineError,
    SizeExceeded,
    UnsupportedContentType,
    UnsupportedSource,
)
from haven_bot.policy import format_megabytes
from haven_bot.sources import SourceKind

PANEL_COLOR = discord.Color.from_str("#808080")
LOOKUP_COLOR = discord.Color.from_str("#5865F2")
COMING_SOON_COLOR = discord.Color.from_str("#FFA500")
REJECTED_COLOR = discord.Color.from_str("#FF0000")

GENERIC_APOLOGY = "❌ Something went wrong while handling your request. Please try again."
GENERIC_DOWNLOAD_FAILURE = (
    "❌ Something went wrong while processing or downloading the link. "
    "Make sure the link is correct or try again."
)
TIMEOUT_MESSAGE = "❌ The download took too long. Please try again later."
USER_NOT_FOUND = "❌ I couldn't find that user. Check the ID or name and try again."
LOOKUP_FAILED = "❌ Something went wrong while fetching the information. Please try again later."

PLATFORM_NAMES = {
    SourceKind.YOUTUBE: "YouTube",
    SourceKind.TIKTOK: "TikTok",
    SourceKind.INSTAGRAM: "Instagram",
    SourceKind.SNAPCHAT: "Snapchat",
    SourceKind.SOUNDCLOUD: "SoundCloud",
}


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# -------------------------
# Control panel
# -------------------------
def control_panel_embed(logo_filename: str | None = None) -> discord.Embed:
    embed = discord.Embed(
        title="Control Panel",
        description="Pick one of the options below:",
        color=PANEL_COLOR,
        timestamp=_now(),
    )
    embed.add_field(name="Avatar", value="(get a user's avatar)", inline=True)
    embed.add_field(name="Banner", value="(get a user's banner)", inline=True)
    embed.add_field(name="Download", value="(download a clip)", inline=True)
    embed.add_field(name="Boost", value="(buy a server boost)", inline=True)
    embed.add_field(name="Nitro", value="(buy a Nitro subscription)", inline=True)
    embed.set_footer(text="Haven Control Panel")
    if logo_filename:
        embed.set_image(url=f"attachment://{logo_filename}")
    return embed


def coming_soon_embed(feature: str) -> discord.Embed:
    embed = discord.Embed(
        title="🚧 In development",
        description=f"**{feature}** is being worked on and will be available soon!",
        color=COMING_SOON_COLOR,
        timestamp=_now(),
    )
    embed.add_field(name="📋 Status", value="Active development", inline=True)
    embed.add_field(name="📅 Expected", value="Next update", inline=True)
    embed.set_footer(text="Thanks for your patience!")
    return embed


def user_image_embed(title: str, image_url: str, user_id: int) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=f"[📥 Download in full quality]({image_url})",
        color=LOOKUP_COLOR,
        timestamp=_now(),
    )
    embed.set_image(url=image_url)
    embed.set_footer(text=f"User ID: {user_id}")
    return embed


# -------------------------
# Download outcomes
# -------------------------
def duration_exceeded_embed(err: DurationExceeded) -> discord.Embed:
    metadata = err.metadata
    minutes = err.limit_seconds // 60
    embed = discord.Embed(
        title="📺 The video is too long",
        description=(
            f"**{metadata.title}**\n\n"
            f"⚠️ The video is longer than {minutes} minutes ({metadata.duration_label}). "
            "It can't be downloaded because the file would be too large."
        ),
        color=REJECTED_COLOR,
        timestamp=_now(),
    )
    embed.add_field(name="⏱️ Duration", value=metadata.duration_label or "n/a", inline=True)
    embed.add_field(name="📺 Channel", value=metadata.author_name or "n/a", inline=True)
    embed.add_field(name="🔗 Link", value=f"[Watch on YouTube]({err.url})", inline=False)
    if metadata.thumbnail_url:
        embed.set_thumbnail(url=metadata.thumbnail_url)
    return embed


def unsupported_source_message(kind: SourceKind) -> str:
    name = PLATFORM_NAMES.get(kind)
    if name is None or kind in (SourceKind.YOUTUBE, SourceKind.TIKTOK):
        return "❌ Unsupported link. Please use a link from: YouTube, TikTok, Instagram, Snapchat or SoundCloud."
    return f"⚠️ Downloading from {name} is still in development. It will be added soon!"


def failure_reply(err: PipelineError) -> tuple[str | None, discord.Embed | None]:
    match err:
        case DurationExceeded():
            return None, duration_exceeded_embed(err)
        case UnsupportedSource(kind=kind):
            return unsupported_source_message(kind), None
        case UnsupportedContentType():
            return "⚠️ This post contains images. Only videos can be downloaded for now.", None
        case NotFoundError():
            return f"❌ {err}", None
        case SizeExceeded(size_bytes=size, limit_bytes=limit):
            return f"❌ The video is too large ({format_megabytes(size)}). The maximum is {limit // MIB} MB.", None
        case _:
            return GENERIC_DOWNLOAD_FAILURE, None
