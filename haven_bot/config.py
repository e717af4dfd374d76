import dataclasses
import logging
import os
from pathlib import Path

MIB = 1024 * 1024

# -------------------------
# Limits
# -------------------------
MAX_DURATION_SECONDS = 600
MAX_UPLOAD_BYTES = 500 * MIB
NORMAL_TIER_BYTES = 25 * MIB
CLASSIC_TIER_BYTES = 50 * MIB

DEFAULT_TIKTOK_API_URL = "https://www.tikwm.com/api/"
CHROME_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
PRESENCE_TEXT = "Haven Control Panel | /setup_control_panel"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from err


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from err


@dataclasses.dataclass(frozen=True)
class Settings:
    token: str = ""
    log_level: str = "INFO"
    download_dir: Path = Path(".")
    max_duration_seconds: int = MAX_DURATION_SECONDS
    http_timeout_seconds: float = 300.0
    pipeline_timeout_seconds: float = 900.0
    panel_data_file: Path = Path("control_panel_data.json")
    panel_logo_path: Path = Path("haven_logo.png")
    tiktok_api_url: str = DEFAULT_TIKTOK_API_URL
    dev_guild_id: int | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        dev_guild = os.getenv("DEV_GUILD_ID", "").strip()
        return cls(
            token=os.getenv("DISCORD_TOKEN", "").strip(),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            download_dir=Path(os.getenv("DOWNLOAD_DIR", ".")),
            max_duration_seconds=_env_int("MAX_DURATION_SECONDS", MAX_DURATION_SECONDS),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 300.0),
            pipeline_timeout_seconds=_env_float("PIPELINE_TIMEOUT_SECONDS", 900.0),
            panel_data_file=Path(os.getenv("PANEL_DATA_FILE", "control_panel_data.json")),
            panel_logo_path=Path(os.getenv("PANEL_LOGO_PATH", "haven_logo.png")),
            tiktok_api_url=os.getenv("TIKTOK_API_URL", DEFAULT_TIKTOK_API_URL).strip() or DEFAULT_TIKTOK_API_URL,
            dev_guild_id=int(dev_guild) if dev_guild.isdigit() else None,
        )


# -------------------------
# Logging
# -------------------------
def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
