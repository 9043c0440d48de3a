"""Settings loader for Rollkeeper."""

from pathlib import Path
from typing import Any, Literal

import tomllib
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# The dice bot whose roll tables are harvested.
DEFAULT_ROLL_BOT_USER_ID = 809017610111942686


def _toml_settings_source() -> dict[str, Any]:
    """Load settings from config.toml with keys mapped to Settings fields.

    This source has LOWER priority than env/.env so those can override TOML.
    """
    cfg_path = Path("config.toml")
    if not cfg_path.exists():
        return {}
    with cfg_path.open("rb") as f:
        t = tomllib.load(f)
    discord_cfg = t.get("discord", {}) or {}
    harvest_cfg = t.get("harvest", {}) or {}
    log_cfg = t.get("logging", {}) or {}
    out: dict[str, Any] = {
        "env": t.get("app", {}).get("env", "dev"),
        "discord_api_base": discord_cfg.get("api_base", "https://discord.com/api/v10"),
        # When set, follow-ups are posted to this base URL instead of Discord.
        "discord_webhook_url_override": discord_cfg.get("webhook_url_override"),
        "logging_enabled": log_cfg.get("enabled", True),
        "logging_level": log_cfg.get("level", "INFO"),
        "logging_file_path": log_cfg.get("file_path", "logs/rollkeeper.jsonl"),
        "logging_max_bytes": log_cfg.get("max_bytes", 5_000_000),
        "logging_backup_count": log_cfg.get("backup_count", 5),
    }
    # Only forward harvest keys that are present so field defaults still apply
    if "roll_bot_user_id" in harvest_cfg:
        out["roll_bot_user_id"] = harvest_cfg["roll_bot_user_id"]
    for key in ("channel_id", "page_size", "page_delay_seconds", "output_dir", "mode"):
        if key in harvest_cfg:
            out[f"harvest_{key}"] = harvest_cfg[key]

    # Per-handler levels: strings INFO|DEBUG|WARNING|ERROR|CRITICAL|NONE
    # Backward-compatible: if console/to_file are bools, map True->level, False->NONE
    overall = out["logging_level"]

    def _norm_level(v, default):
        if isinstance(v, str):
            return v.upper()
        if isinstance(v, bool):
            return default if v else "NONE"
        return default

    out["logging_console"] = _norm_level(log_cfg.get("console"), overall)
    out["logging_file"] = _norm_level(log_cfg.get("to_file"), overall)

    ops_cfg = t.get("ops", {}) or {}
    out["metrics_endpoint_enabled"] = ops_cfg.get("metrics_endpoint_enabled", False)
    return out


class Settings(BaseSettings):
    env: str = Field(default="dev")

    # --- Discord Credentials ---
    discord_app_id: str | None = None
    discord_public_key: str = ""
    discord_bot_token: SecretStr | None = None
    discord_api_base: str = "https://discord.com/api/v10"
    # Follow-up messages are posted here instead of discord_api_base when set
    discord_webhook_url_override: str | None = None

    # --- Harvest ---
    roll_bot_user_id: int = DEFAULT_ROLL_BOT_USER_ID
    # Falls back to the channel the command was invoked in
    harvest_channel_id: str | None = None
    harvest_page_size: int = Field(default=100, ge=1, le=100)
    harvest_page_delay_seconds: float = Field(default=0.01, ge=0)
    harvest_output_dir: str = "data"
    harvest_mode: Literal["grab", "replay"] = "grab"

    # --- Logging ---
    logging_enabled: bool = True
    logging_level: str = "INFO"
    logging_console: str = "INFO"
    logging_file: str = "INFO"
    logging_file_path: str = "logs/rollkeeper.jsonl"
    logging_max_bytes: int = 5_000_000
    logging_backup_count: int = 5

    # --- Ops ---
    metrics_endpoint_enabled: bool = False

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",  # Safely ignore any extra env vars
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Precedence (highest to lowest):
        # 1) init_settings (explicit overrides in code/tests)
        # 2) dotenv (.env in cwd): developer-local overrides
        # 3) env_settings (OS env)
        # 4) TOML (repo config.toml): project defaults
        # 5) file_secret_settings
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            _toml_settings_source,
            file_secret_settings,
        )


def load_settings() -> Settings:
    return Settings()
