"""Crash-safe progress record for the polling loop.

The checkpoint is one small JSON document::

    {"last_processed_id": "1790...", "tweets": {"1790...": {"processed": 1715...}}}

``tweets`` is the dedup ledger: every item that was handled (posted or
deliberately ignored) gets an entry, and the store is rewritten after each
item. ``last_processed_id`` is only moved once a whole search batch went
through, so a crash mid-batch replays the same window and the ledger filters
out what was already done.

Saving uses a write-to-temporary-then-rename pattern so an interrupted write
loses at most the latest update instead of corrupting the file.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Checkpoint:
    """In-memory view of the checkpoint document.

    Attributes
    ----------
    last_processed_id: str | None
        Newest id of the last fully processed search batch. ``None`` until the
        first batch completes.
    tweets: dict
        Maps item id to ``{"processed": <epoch milliseconds>}``.
    """

    last_processed_id: Optional[str] = None
    tweets: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def is_processed(self, item_id: str) -> bool:
        return str(item_id) in self.tweets

    def record(self, item_id: str, processed_at: int | None = None) -> None:
        """Add ``item_id`` to the ledger, stamped with ``processed_at`` (ms)."""
        stamp = _now_ms() if processed_at is None else processed_at
        self.tweets[str(item_id)] = {"processed": stamp}

    def to_dict(self) -> Dict[str, Any]:
        return {"last_processed_id": self.last_processed_id, "tweets": self.tweets}

    @classmethod
    def from_dict(cls, data: Any) -> "Checkpoint":
        """Build a checkpoint from a decoded document.

        Raises ``ValueError`` when the document does not have the expected
        shape.
        """
        if not isinstance(data, dict):
            raise ValueError("checkpoint document must be a JSON object")
        last_id = data.get("last_processed_id")
        tweets = data.get("tweets") or {}
        if not isinstance(tweets, dict):
            raise ValueError("'tweets' must be a JSON object")
        return cls(
            last_processed_id=str(last_id) if last_id else None,
            tweets={
                str(key): value if isinstance(value, dict) else {"processed": 0}
                for key, value in tweets.items()
            },
        )


class CheckpointStore:
    """Loads and saves a :class:`Checkpoint` at a fixed path."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Checkpoint:
        """Return the persisted checkpoint, or a fresh one.

        A missing file is the normal first-run case. An unreadable or
        malformed file is logged and also treated as a fresh start; this
        method never raises.
        """
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return Checkpoint.from_dict(data)
        except FileNotFoundError:
            logger.info("No checkpoint at %s, starting fresh", self.path)
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Ignoring unreadable checkpoint %s: %s", self.path, e)
        return Checkpoint()

    def save(self, checkpoint: Checkpoint) -> None:
        """Atomically overwrite the checkpoint file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(checkpoint.to_dict(), f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)
