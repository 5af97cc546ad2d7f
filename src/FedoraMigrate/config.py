"""Settings loader for FedoraMigrate."""

from pathlib import Path
from typing import Any

import tomllib
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _toml_settings_source() -> dict[str, Any]:
    """Load settings from config.toml with keys mapped to Settings fields.

    This source has LOWER priority than env/.env so those can override TOML.

    Example:
        [migrate]
        output_filename = "migrate.sql"
        langcode = "en"
        node_bundle = "islandora_object"

        [logging]
        level = "INFO"
        console = "INFO"   # or true/false
        to_file = false
    """
    cfg_path = Path("config.toml")
    if not cfg_path.exists():
        return {}
    with cfg_path.open("rb") as f:
        t = tomllib.load(f)

    migrate_cfg = t.get("migrate", {}) or {}
    log_cfg = t.get("logging", {}) or {}
    out: dict[str, Any] = {}
    for key in ("input_dir", "output_dir", "output_filename", "langcode", "node_bundle"):
        if migrate_cfg.get(key) is not None:
            out[key] = migrate_cfg[key]

    overall = str(log_cfg.get("level", "INFO")).upper()
    out["logging_level"] = overall

    def _norm_level(v, default):
        if isinstance(v, str):
            return v.upper()
        if isinstance(v, bool):
            return default if v else "NONE"
        return default

    if "console" in log_cfg:
        out["logging_console"] = _norm_level(log_cfg["console"], overall)
    if "to_file" in log_cfg:
        out["logging_file"] = _norm_level(log_cfg["to_file"], overall)
    for key in ("file_path", "max_bytes", "backup_count"):
        if log_cfg.get(key) is not None:
            out[f"logging_{key}"] = log_cfg[key]
    return out


class Settings(BaseSettings):
    # --- Migration ---
    input_dir: Path | None = None
    output_dir: Path = Field(default=Path("."))
    output_filename: str = "migrate.sql"
    langcode: str = Field(default="en", description="Drupal langcode for every created entity.")
    node_bundle: str = Field(default="islandora_object", description="Node type of created nodes.")

    # --- Logging ---
    # Per-handler levels: INFO|DEBUG|WARNING|ERROR|CRITICAL|NONE
    logging_level: str = "INFO"
    logging_console: str = "INFO"
    logging_file: str = "NONE"
    logging_file_path: str = "logs/fedora_migrate.jsonl"
    logging_max_bytes: int = 5_000_000
    logging_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_prefix="FEDORA_MIGRATE_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
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
        # 1) init_settings (CLI options, tests)
        # 2) dotenv (.env in cwd)
        # 3) env_settings (OS env)
        # 4) TOML (config.toml in cwd)
        # 5) file_secret_settings
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            _toml_settings_source,
            file_secret_settings,
        )


def load_settings(**overrides: Any) -> Settings:
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
