"""Configuration management for Clarity."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

CLARITY_HOME = Path(os.environ.get("CLARITY_HOME", Path.home() / "clarity"))
CONFIG_FILE = CLARITY_HOME / "config" / "clarity.conf"


@dataclass
class Config:
    """Clarity configuration."""

    supabase_url: str = ""
    supabase_key: str = ""
    supabase_access_token: str = ""
    user_id: str = ""
    entries_table: str = "entries"
    timezone: str = "America/Toronto"
    classifier_command: str = "claude -p -"
    classifier_timeout: int = 120
    default_scope: str = "day"
    reminder_offsets: list[int] = field(default_factory=lambda: [15, 30])

    @property
    def tz(self) -> ZoneInfo:
        """Configured timezone, falling back to UTC if unknown."""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {self.timezone!r}, using UTC")
            return ZoneInfo("UTC")


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid {key.upper()} value {value!r}, using {default}")
        return default


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from clarity.conf file."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if not config_file.exists():
        return config

    for line in config_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value.startswith('"'):
            end_quote = value.find('"', 1)
            if end_quote != -1:
                value = value[1:end_quote]
            else:
                value = value[1:]
        elif value.startswith("'"):
            end_quote = value.find("'", 1)
            if end_quote != -1:
                value = value[1:end_quote]
            else:
                value = value[1:]
        else:
            # Unquoted: strip inline comments
            if "#" in value:
                value = value.split("#")[0].strip()

        match key:
            case "supabase_url":
                config.supabase_url = value
            case "supabase_key":
                config.supabase_key = value
            case "supabase_access_token":
                config.supabase_access_token = value
            case "user_id":
                config.user_id = value
            case "entries_table":
                config.entries_table = value or config.entries_table
            case "timezone":
                config.timezone = value
            case "classifier_command":
                config.classifier_command = value
            case "classifier_timeout":
                config.classifier_timeout = _parse_int(key, value, config.classifier_timeout)
            case "default_scope":
                config.default_scope = value.lower()
            case "reminder_offsets":
                offsets = []
                for part in value.split(","):
                    part = part.strip()
                    if part:
                        offsets.append(_parse_int(key, part, 0))
                config.reminder_offsets = [o for o in offsets if o > 0]
            case _:
                logger.debug(f"Ignoring unknown config key {key!r}")

    return config
