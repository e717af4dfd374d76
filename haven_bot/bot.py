"""
Usage (local):
  export DISCORD_TOKEN="..."
  python -m haven_bot
"""

import dataclasses
import enum
import logging
from pathlib import Path
from typing import assert_never

import discord
import requests
from discord import app_commands

from haven_bot.config import PRESENCE_TEXT, Settings, configure_logging
from haven_bot.embeds import (
    GENERIC_APOLOGY,
    LOOKUP_FAILED,
    USER_NOT_FOUND,
    coming_soon_embed,
    control_panel_embed,
    user_image_embed,
)
from haven_bot.errors import NotFoundError
from haven_bot.identity import avatar_url, fetch_banner_url, resolve_user
from haven_bot.pipeline import MediaPipeline
from haven_bot.registry import ControlPanelRecord, PanelRegistry
from haven_bot.sources import SourceKind, TikTokResolver, YouTubeResolver
from haven_bot.transfer import StreamTransfer

logger = logging.getLogger("haven-bot")


# -------------------------
# Panel requests
# -------------------------
class LookupKind(enum.Enum):
    AVATAR = "avatar"
    BANNER = "banner"


@dataclasses.dataclass(frozen=True)
class SetupPanel:
    pass


@dataclasses.dataclass(frozen=True)
class OpenLookupForm:
    kind: LookupKind


@dataclasses.dataclass(frozen=True)
class OpenDownloadForm:
    pass


@dataclasses.dataclass(frozen=True)
class ShowComingSoon:
    feature: str


@dataclasses.dataclass(frozen=True)
class LookupUser:
    kind: LookupKind
    identifier: str


@dataclasses.dataclass(frozen=True)
class DownloadMedia:
    url: str


PanelRequest = SetupPanel | OpenLookupForm | OpenDownloadForm | ShowComingSoon | LookupUser | DownloadMedia


# -------------------------
# Application context
# -------------------------
@dataclasses.dataclass
class AppContext:
    settings: Settings
    client: discord.Client
    session: requests.Session
    registry: PanelRegistry
    pipeline: MediaPipeline


def build_context(settings: Settings, client: discord.Client) -> AppContext:
    session = requests.Session()
    resolvers = {
        SourceKind.YOUTUBE: YouTubeResolver(),
        SourceKind.TIKTOK: TikTokResolver(session, settings.tiktok_api_url),
    }
    pipeline = MediaPipeline(
        resolvers,
        StreamTransfer(session, settings.http_timeout_seconds),
        settings.download_dir,
        max_duration_seconds=settings.max_duration_seconds,
        timeout_seconds=settings.pipeline_timeout_seconds or None,
    )
    return AppContext(
        settings=settings,
        client=client,
        session=session,
        registry=PanelRegistry(settings.panel_data_file),
        pipeline=pipeline,
    )


class InteractionResponder:
    def __init__(self, interaction: discord.Interaction):
        self._interaction = interaction

    async def edit(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        file_path: Path | None = None,
    ) -> None:
        if file_path is None:
            await self._interaction.edit_original_response(content=content, embed=embed)
            return
        attachment = discord.File(file_path, filename=file_path.name)
        await self._interaction.edit_original_response(content=content, embed=embed, attachments=[attachment])


# -------------------------
# Handlers
# -------------------------
async def apologize(interaction: discord.Interaction, error: Exception) -> None:
    logger.error("Error handling interaction: %s", error, exc_info=error)
    try:
        if interaction.response.is_done():
            await interaction.followup.send(GENERIC_APOLOGY, ephemeral=True)
        else:
            await interaction.response.send_message(GENERIC_APOLOGY, ephemeral=True)
    except Exception as reply_err:
        logger.info("Could not send apology: %s", reply_err)


async def post_control_panel(ctx: AppContext, interaction: discord.Interaction) -> None:
    logo = ctx.settings.panel_logo_path
    kwargs = {}
    if logo.is_file():
        kwargs["file"] = discord.File(logo, filename=logo.name)
    else:
        logger.warning("Panel logo is missing: %s", logo)
    embed = control_panel_embed(logo.name if kwargs else None)
    await interaction.response.send_message(embed=embed, view=ControlPanelView(ctx), **kwargs)

    message = await interaction.original_response()
    record = ControlPanelRecord.now(message.id, interaction.channel_id, interaction.guild_id)
    await ctx.registry.append(record)


async def lookup_user(ctx: AppContext, interaction: discord.Interaction, kind: LookupKind, identifier: str) -> None:
    await interaction.response.defer(ephemeral=True, thinking=True)
    content: str | None = None
    embed: discord.Embed | None = None
    try:
        user = await resolve_user(ctx.client, identifier, interaction.guild)
        if kind is LookupKind.AVATAR:
            embed = user_image_embed(f"👤 Avatar of {user}", avatar_url(user), user.id)
        else:
            banner = await fetch_banner_url(ctx.client, user)
            if banner is None:
                content = f"❌ **{user}** has no custom banner."
            else:
                embed = user_image_embed(f"🖼️ Banner of {user}", banner, user.id)
    except NotFoundError as err:
        logger.info("User lookup found nothing: %s", err)
        content = USER_NOT_FOUND
    except (discord.HTTPException, discord.ClientException) as err:
        logger.error("User lookup failed: identifier=%s err=%s", identifier, err)
        content = LOOKUP_FAILED
    await interaction.edit_original_response(content=content, embed=embed)


async def download_media(ctx: AppContext, interaction: discord.Interaction, url: str) -> None:
    await interaction.response.defer(ephemeral=True, thinking=True)
    await ctx.pipeline.run(url, InteractionResponder(interaction))


async def handle_request(ctx: AppContext, interaction: discord.Interaction, request: PanelRequest) -> None:
    match request:
        case SetupPanel():
            await post_control_panel(ctx, interaction)
        case OpenLookupForm(kind=kind):
            await interaction.response.send_modal(UserLookupModal(ctx, kind))
        case OpenDownloadForm():
            await interaction.response.send_modal(DownloadModal(ctx))
        case ShowComingSoon(feature=feature):
            await interaction.response.send_message(embed=coming_soon_embed(feature), ephemeral=True)
        case LookupUser(kind=kind, identifier=identifier):
            await lookup_user(ctx, interaction, kind, identifier)
        case DownloadMedia(url=url):
            await download_media(ctx, interaction, url)
        case _:
            assert_never(request)


# -------------------------
# Views & modals
# -------------------------
class ControlPanelView(discord.ui.View):
    def __init__(self, ctx: AppContext):
        super().__init__(timeout=None)
        self.ctx = ctx

    @discord.ui.button(label="Avatar", style=discord.ButtonStyle.secondary, custom_id="btn_avatar", row=0)
    async def avatar(self, interaction: discord.Interaction, button: discord.ui.Button):
        await handle_request(self.ctx, interaction, OpenLookupForm(LookupKind.AVATAR))

    @discord.ui.button(label="Banner", style=discord.ButtonStyle.secondary, custom_id="btn_banner", row=0)
    async def banner(self, interaction: discord.Interaction, button: discord.ui.Button):
        await handle_request(self.ctx, interaction, OpenLookupForm(LookupKind.BANNER))

    @discord.ui.button(label="Download", style=discord.ButtonStyle.secondary, custom_id="btn_download", row=0)
    async def download(self, interaction: discord.Interaction, button: discord.ui.Button):
        await handle_request(self.ctx, interaction, OpenDownloadForm())

    @discord.ui.button(label="Boost", style=discord.ButtonStyle.secondary, custom_id="btn_boost", row=1)
    async def boost(self, interaction: discord.Interaction, button: discord.ui.Button):
        await handle_request(self.ctx, interaction, ShowComingSoon("Boost"))

    @discord.ui.button(label="Nitro", style=discord.ButtonStyle.secondary, custom_id="btn_nitro", row=1)
    async def nitro(self, interaction: discord.Interaction, button: discord.ui.Button):
        await handle_request(self.ctx, interaction, ShowComingSoon("Nitro"))

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item) -> None:
        await apologize(interaction, error)


class UserLookupModal(discord.ui.Modal):
    identifier = discord.ui.TextInput(
        label="User ID or username",
        placeholder="e.g. 123456789 or @username",
        style=discord.TextStyle.short,
        custom_id="user_identifier",
        required=True,
    )

    def __init__(self, ctx: AppContext, kind: LookupKind):
        title = "👤 Get an avatar" if kind is LookupKind.AVATAR else "🖼️ Get a banner"
        super().__init__(title=title, custom_id=f"user_input_{kind.value}")
        self.ctx = ctx
        self.kind = kind

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await handle_request(self.ctx, interaction, LookupUser(self.kind, self.identifier.value))

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await apologize(interaction, error)


class DownloadModal(discord.ui.Modal):
    media_url = discord.ui.TextInput(
        label="Video or audio link",
        placeholder="Paste a link from YouTube, TikTok, Instagram, etc...",
        style=discord.TextStyle.short,
        custom_id="media_url",
        required=True,
    )

    def __init__(self, ctx: AppContext):
        super().__init__(title="📥 Download a clip", custom_id="download_options")
        self.ctx = ctx

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await handle_request(self.ctx, interaction, DownloadMedia(self.media_url.value))

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await apologize(interaction, error)


# -------------------------
# Client
# -------------------------
class HavenClient(discord.Client):
    def __init__(self, settings: Settings):
        intents = discord.Intents.default()
        intents.members = True
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)
        self.context = build_context(settings, self)
        register_commands(self.tree, self.context)

    async def setup_hook(self) -> None:
        panels = await self.context.registry.load()
        logger.info("Loaded %s control panel records", len(panels))
        # One view serves every posted panel; buttons route by custom_id, not message_id.
        self.add_view(ControlPanelView(self.context))
        await sync_commands(self.tree, self.context.settings)

    async def on_ready(self) -> None:
        logger.info("Bot is ready: user=%s guilds=%s", self.user, len(self.guilds))
        await self.change_presence(activity=discord.Game(name=PRESENCE_TEXT), status=discord.Status.online)

    async def close(self) -> None:
        self.context.session.close()
        await super().close()


def register_commands(tree: app_commands.CommandTree, ctx: AppContext) -> None:
    @tree.command(name="setup_control_panel", description="🎛️ Set up the central control panel (admins only)")
    @app_commands.default_permissions(administrator=True)
    async def setup_control_panel(interaction: discord.Interaction) -> None:
        await handle_request(ctx, interaction, SetupPanel())

    @tree.error
    async def on_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        await apologize(interaction, error)


async def sync_commands(tree: app_commands.CommandTree, settings: Settings) -> None:
    logger.info("Registering commands...")
    try:
        if settings.dev_guild_id:
            guild = discord.Object(id=settings.dev_guild_id)
            tree.copy_global_to(guild=guild)
            synced = await tree.sync(guild=guild)
        else:
            synced = await tree.sync()
    except discord.HTTPException as err:
        logger.error("Command registration failed: %s", err)
        return
    logger.info("Registered %s commands", len(synced))


# -------------------------
# Main
# -------------------------
def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if not settings.token:
        raise RuntimeError("DISCORD_TOKEN is required.")
    settings.download_dir.mkdir(parents=True, exist_ok=True)

    client = HavenClient(settings)
    logger.info("Bot starting...")
    client.run(settings.token, log_handler=None)


if __name__ == "__main__":
    main()
