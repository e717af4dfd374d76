import logging
import re

import discord

from haven_bot.errors import NotFoundError

logger = logging.getLogger(__name__)

NUMERIC_ID_REGEX = re.compile(r"^\d+$")
MENTION_CHARS = str.maketrans("", "", "@<>")
IMAGE_SIZE = 4096


async def search_members(guild: discord.Guild, identifier: str) -> discord.Member | None:
    # No tie-break: the first member in the order the API returns them wins.
    term = identifier.translate(MENTION_CHARS).strip().lower()
    if not term:
        return None
    async for member in guild.fetch_members(limit=None):
        if term in member.name.lower() or term in str(member).lower():
            return member
    return None


async def resolve_user(
    client: discord.Client,
    identifier: str,
    guild: discord.Guild | None,
) -> discord.User | discord.Member:
    identifier = (identifier or "").strip()
    user: discord.User | discord.Member | None = None

    if NUMERIC_ID_REGEX.match(identifier):
        try:
            user = await client.fetch_user(int(identifier))
        except discord.HTTPException as err:
            logger.info("Direct user fetch failed, falling back to name search: id=%s err=%s", identifier, err)

    if user is None and guild is not None:
        user = await search_members(guild, identifier)

    if user is None:
        raise NotFoundError(f"no user matches {identifier!r}")
    return user


def avatar_url(user: discord.User | discord.Member) -> str:
    asset = user.avatar or user.default_avatar
    return asset.with_size(IMAGE_SIZE).url


async def fetch_banner_url(client: discord.Client, user: discord.abc.User) -> str | None:
    # Cached users never carry a banner, so always refetch.
    refreshed = await client.fetch_user(user.id)
    if refreshed.banner is None:
        return None
    return refreshed.banner.with_size(IMAGE_SIZE).url
