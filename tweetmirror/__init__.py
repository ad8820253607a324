"""Top-level package for the Twitter-to-Mastodon tag mirror.

This package exposes a minimal API for searching tagged tweets, rewriting
their text, downloading their media and posting them to Mastodon, plus the
crash-safe checkpoint that keeps the bridge from reposting. See individual
modules for details.
"""

from .checkpoint import Checkpoint, CheckpointStore
from .config import ConfigError, Settings, load_settings
from .media import MediaFetcher
from .publisher import MastodonPublisher, PublishError
from .scheduler import run_forever
from .source import MediaRef, SearchBatch, SourceItem, TwitterSource
from .text import modified_text, status_url

__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "ConfigError",
    "Settings",
    "load_settings",
    "MediaFetcher",
    "MastodonPublisher",
    "PublishError",
    "run_forever",
    "MediaRef",
    "SearchBatch",
    "SourceItem",
    "TwitterSource",
    "modified_text",
    "status_url",
]
