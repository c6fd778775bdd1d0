"""Configuration management for bujo."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

BUJO_HOME = Path(os.environ.get("BUJO_HOME", Path.home() / "bujo"))
CONFIG_FILE = BUJO_HOME / "config" / "bujo.conf"
DEFAULT_API_BASE_URL = "http://localhost:8080/api/"


@dataclass
class Config:
    """bujo configuration."""

    api_base_url: str = DEFAULT_API_BASE_URL
    # Seconds; 0 waits forever
    request_timeout: float = 0
    # 0 fetches every day of a month at once
    max_concurrent_day_fetches: int = 0
    log_level: str = "WARNING"


def _parse_value(value: str) -> str:
    """Strip quotes, or inline comments from unquoted values."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from bujo.conf, then apply environment overrides."""
    config = Config()
    path = path or CONFIG_FILE

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _parse_value(value.strip())

            match key:
                case "api_base_url":
                    config.api_base_url = value
                case "request_timeout":
                    try:
                        config.request_timeout = float(value)
                    except ValueError:
                        logger.warning(f"Invalid REQUEST_TIMEOUT: {value}")
                case "max_concurrent_day_fetches":
                    try:
                        config.max_concurrent_day_fetches = max(0, int(value))
                    except ValueError:
                        logger.warning(f"Invalid MAX_CONCURRENT_DAY_FETCHES: {value}")
                case "log_level":
                    config.log_level = value.upper()
                case _:
                    logger.debug(f"Ignoring unknown config key: {key}")

    if os.environ.get("BUJO_API_BASE_URL"):
        config.api_base_url = os.environ["BUJO_API_BASE_URL"]

    return config
