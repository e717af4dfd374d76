import asyncio
import dataclasses
import enum
import logging
from urllib.parse import urljoin

import requests
import yt_dlp

from haven_bot.config import CHROME_USER_AGENT, DEFAULT_TIKTOK_API_URL
from haven_bot.errors import NotFoundError, UnsupportedContentType

logger = logging.getLogger(__name__)


class SourceKind(enum.Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    SNAPCHAT = "snapchat"
    SOUNDCLOUD = "soundcloud"
    UNSUPPORTED = "unsupported"


# Checked in order, first match wins.
SOURCE_DOMAINS: tuple[tuple[SourceKind, tuple[str, ...]], ...] = (
    (SourceKind.YOUTUBE, ("youtube.com", "youtu.be")),
    (SourceKind.TIKTOK, ("tiktok.com",)),
    (SourceKind.INSTAGRAM, ("instagram.com",)),
    (SourceKind.SNAPCHAT, ("snapchat.com",)),
    (SourceKind.SOUNDCLOUD, ("soundcloud.com",)),
)

INACCESSIBLE_LINK = "Invalid link or the video can't be reached."
NO_DOWNLOAD_LINK = "Couldn't get a download link. Try again."

YOUTUBE_FORMAT = (
    "best[ext=mp4][vcodec!=none][acodec!=none]"
    "/best[vcodec!=none][acodec!=none]"
    "/best"
)

# Direct-download fields of a TikTok lookup, in order of preference:
# SD, HD, watermarked, generic.
TIKTOK_VIDEO_FIELDS = ("play", "hdplay", "wmplay", "download_addr")
TIKTOK_LOOKUP_TIMEOUT_SECONDS = 30


@dataclasses.dataclass(frozen=True)
class MediaRequest:
    raw_url: str
    source_kind: SourceKind

    @classmethod
    def from_url(cls, url: str) -> "MediaRequest":
        url = (url or "").strip()
        return cls(raw_url=url, source_kind=classify(url))


@dataclasses.dataclass(frozen=True)
class MediaMetadata:
    title: str
    duration_seconds: float | None = None
    duration_label: str | None = None
    author_name: str | None = None
    thumbnail_url: str | None = None


@dataclasses.dataclass(frozen=True)
class RemoteHandle:
    url: str
    headers: dict[str, str] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class ResolvedMedia:
    metadata: MediaMetadata
    handle: RemoteHandle


# -------------------------
# Classification
# -------------------------
def classify(url: str) -> SourceKind:
    lowered = (url or "").lower()
    for kind, domains in SOURCE_DOMAINS:
        if any(domain in lowered for domain in domains):
            return kind
    return SourceKind.UNSUPPORTED


def format_duration(seconds: float | None) -> str | None:
    if seconds is None:
        return None
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def select_download_url(data: dict, fields: tuple[str, ...], base_url: str) -> str | None:
    for field in fields:
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            return urljoin(base_url, value.strip())
    return None


# -------------------------
# YouTube
# -------------------------
class YouTubeResolver:
    def __init__(self, ydl_opts: dict | None = None):
        self._ydl_opts = {
            "format": YOUTUBE_FORMAT,
            "noplaylist": True,
            "skip_download": True,
            "user_agent": CHROME_USER_AGENT,
            "quiet": True,
            "no_warnings": True,
        }
        if ydl_opts:
            self._ydl_opts.update(ydl_opts)

    def _extract(self, url: str) -> dict | None:
        with yt_dlp.YoutubeDL(self._ydl_opts) as ydl:
            return ydl.extract_info(url, download=False)

    async def resolve(self, url: str) -> ResolvedMedia:
        try:
            info = await asyncio.to_thread(self._extract, url)
        except yt_dlp.utils.YoutubeDLError as err:
            logger.info("YouTube extraction failed: url=%s err=%s", url, err)
            raise NotFoundError(INACCESSIBLE_LINK) from err

        if not isinstance(info, dict):
            raise NotFoundError(INACCESSIBLE_LINK)
        entries = info.get("entries")
        if entries:
            info = next((entry for entry in entries if entry), None)
            if not info:
                raise NotFoundError(INACCESSIBLE_LINK)

        stream_url = info.get("url")
        if not stream_url:
            raise NotFoundError(NO_DOWNLOAD_LINK)

        duration = info.get("duration")
        metadata = MediaMetadata(
            title=info.get("title") or "YouTube video",
            duration_seconds=duration,
            duration_label=format_duration(duration) or info.get("duration_string"),
            author_name=info.get("channel") or info.get("uploader"),
            thumbnail_url=_pick_thumbnail(info),
        )
        headers = {str(k): str(v) for k, v in (info.get("http_headers") or {}).items()}
        return ResolvedMedia(metadata=metadata, handle=RemoteHandle(url=stream_url, headers=headers))


def _pick_thumbnail(info: dict) -> str | None:
    if info.get("thumbnail"):
        return info["thumbnail"]
    thumbnails = info.get("thumbnails") or []
    for thumb in thumbnails:
        if isinstance(thumb, dict) and thumb.get("url"):
            return thumb["url"]
    return None


# -------------------------
# TikTok
# -------------------------
class TikTokResolver:
    def __init__(self, session: requests.Session, api_url: str = DEFAULT_TIKTOK_API_URL):
        self._session = session
        self._api_url = api_url

    def _lookup(self, url: str) -> dict:
        with self._session.get(
            self._api_url,
            params={"url": url, "hd": 1},
            headers={"User-Agent": CHROME_USER_AGENT},
            timeout=TIKTOK_LOOKUP_TIMEOUT_SECONDS,
        ) as response:
            response.raise_for_status()
            return response.json()

    async def resolve(self, url: str) -> ResolvedMedia:
        try:
            payload = await asyncio.to_thread(self._lookup, url)
        except (requests.RequestException, ValueError) as err:
            logger.info("TikTok lookup failed: url=%s err=%s", url, err)
            raise NotFoundError(INACCESSIBLE_LINK) from err

        if not isinstance(payload, dict) or payload.get("code") != 0:
            logger.info("TikTok lookup unsuccessful: url=%s payload=%.200s", url, payload)
            raise NotFoundError(INACCESSIBLE_LINK)
        data = payload.get("data")
        if not isinstance(data, dict) or not data:
            raise NotFoundError(INACCESSIBLE_LINK)

        if data.get("images"):
            raise UnsupportedContentType("image posts")

        download_url = select_download_url(data, TIKTOK_VIDEO_FIELDS, self._api_url)
        if not download_url:
            logger.warning("No download URL in TikTok data: keys=%s", sorted(data))
            raise NotFoundError(NO_DOWNLOAD_LINK)

        author = data.get("author") if isinstance(data.get("author"), dict) else {}
        duration = data.get("duration") or None
        metadata = MediaMetadata(
            title=data.get("title") or "TikTok video",
            duration_seconds=duration,
            duration_label=format_duration(duration),
            author_name=author.get("nickname"),
            thumbnail_url=data.get("cover"),
        )
        return ResolvedMedia(
            metadata=metadata,
            handle=RemoteHandle(url=download_url, headers={"User-Agent": CHROME_USER_AGENT}),
        )
