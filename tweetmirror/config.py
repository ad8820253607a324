"""Runtime settings read from the environment.

All secrets and the search tag come from environment variables (optionally
populated from a ``.env`` file by :mod:`dotenv` in ``main``). Missing required
keys are a startup error: the polling loop must never start half configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

REQUIRED_KEYS = (
    "MASTO_HOST",
    "MASTO_ACCESS_TOKEN",
    "TWITTER_BEARER",
    "TWITTER_TAG",
)

DEFAULT_INTERVAL = 5 * 60  # seconds between cycles
DEFAULT_DATA_FILE = "toots.json"
DEFAULT_MEDIA_DIR = "scheduled/media"
DEFAULT_HTTP_TIMEOUT = 30.0

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised when the environment does not describe a usable configuration."""


@dataclass
class Settings:
    """Container for everything the bridge needs to run.

    Attributes
    ----------
    masto_host: str
        Base URL of the Mastodon instance, e.g. ``https://mastodon.social``.
    masto_access_token: str
        Access token of the destination account.
    twitter_bearer: str
        App bearer token for the Twitter v2 API.
    twitter_tag: str
        Search query, usually a hashtag such as ``#castles``.
    interval_seconds: float
        Pause between two cycles.
    data_file: str
        Path of the JSON checkpoint document.
    media_dir: str
        Directory where downloaded attachments are written.
    dry_run: bool
        When True nothing is posted; the post text is only logged.
    http_timeout: float
        Timeout applied to media downloads and Mastodon requests.
    """

    masto_host: str
    masto_access_token: str
    twitter_bearer: str
    twitter_tag: str
    interval_seconds: float = DEFAULT_INTERVAL
    data_file: str = DEFAULT_DATA_FILE
    media_dir: str = DEFAULT_MEDIA_DIR
    dry_run: bool = False
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


def _parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _parse_seconds(key: str, value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigError(f"{key} must be a number of seconds, got {value!r}")
    if seconds <= 0:
        raise ConfigError(f"{key} must be positive, got {value!r}")
    return seconds


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from an environment mapping.

    Raises
    ------
    ConfigError
        If any required key is missing or blank, or a numeric setting cannot
        be parsed.
    """
    env = os.environ if environ is None else environ
    missing = [key for key in REQUIRED_KEYS if not (env.get(key) or "").strip()]
    if missing:
        raise ConfigError(f"{', '.join(missing)} is a required env var")
    return Settings(
        masto_host=env["MASTO_HOST"].strip().rstrip("/"),
        masto_access_token=env["MASTO_ACCESS_TOKEN"].strip(),
        twitter_bearer=env["TWITTER_BEARER"].strip(),
        twitter_tag=env["TWITTER_TAG"].strip(),
        interval_seconds=_parse_seconds(
            "POLL_INTERVAL", env.get("POLL_INTERVAL"), DEFAULT_INTERVAL
        ),
        data_file=env.get("DATA_FILE") or DEFAULT_DATA_FILE,
        media_dir=env.get("MEDIA_DIR") or DEFAULT_MEDIA_DIR,
        dry_run=_parse_bool(env.get("DRY_RUN")),
        http_timeout=_parse_seconds(
            "HTTP_TIMEOUT", env.get("HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT
        ),
    )
