# Export settings: config.json first, then .env / environment overrides.

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from src.config.logger_config import logger

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_OUTPUT_DIR = "output"

ENV_OVERRIDES = {
    "redmineUrl": "REDMINE_URL",
    "user": "REDMINE_USER",
    "password": "REDMINE_PASSWORD",
    "outputDir": "REDMINE_OUTPUT_DIR",
    "insecure": "REDMINE_INSECURE",
}
TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ExportSettings:
    redmine_url: str | None
    user: str | None = None
    password: str | None = None
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    insecure: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.user and self.password)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    # JSON true and 1 both count; 2, 0 and null do not.
    return isinstance(value, (bool, int, float)) and value == 1


def load_settings(config_path: str | Path = DEFAULT_CONFIG_FILE) -> ExportSettings | None:
    """Read ``config_path``; returns None when the file is missing or not valid JSON."""
    load_dotenv()
    path = Path(config_path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Cannot read configuration file {}: {}", path, exc)
        return None
    if not isinstance(raw, dict):
        logger.error("Configuration file {} must hold a JSON object.", path)
        return None

    for key, env_name in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            raw[key] = env_value

    redmine_url = raw.get("redmineUrl") or None
    if redmine_url and redmine_url.endswith("/"):
        redmine_url = redmine_url[:-1]

    return ExportSettings(
        redmine_url=redmine_url,
        user=raw.get("user") or None,
        password=raw.get("password") or None,
        output_dir=Path(raw.get("outputDir") or DEFAULT_OUTPUT_DIR),
        insecure=_as_bool(raw.get("insecure", False)),
    )
