"""Command-line entry point for the Twitter-to-Mastodon tag mirror.

This script searches Twitter for a tag, and for every new tweet that carries
an image it downloads the first attachment and reposts it to Mastodon with a
cleaned-up caption and a link back to the original. It is designed to run as
a long-lived process: a cycle runs every few minutes, and progress is kept in
a JSON file so a restart neither misses nor reposts tweets.

Configuration comes from the environment (or a ``.env`` file):
``MASTO_HOST``, ``MASTO_ACCESS_TOKEN``, ``TWITTER_BEARER`` and ``TWITTER_TAG``
are required.

Usage example:

    TWITTER_TAG="#castles" python main.py --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from dotenv import load_dotenv

from tweetmirror.checkpoint import Checkpoint, CheckpointStore
from tweetmirror.config import ConfigError, Settings, load_settings
from tweetmirror.media import MediaFetcher
from tweetmirror.publisher import MastodonPublisher
from tweetmirror.scheduler import run_forever
from tweetmirror.source import TwitterSource
from tweetmirror.text import modified_text

logger = logging.getLogger("tweetmirror")

# How far back the very first search looks.
BOOTSTRAP_WINDOW = timedelta(days=1)
LOG_FORMAT = "%(asctime)s  %(levelname)s  %(name)s  %(message)s"


def process_feed(
    store: CheckpointStore,
    source: TwitterSource,
    fetcher: MediaFetcher,
    publisher: MastodonPublisher,
    tag: str,
    now: datetime | None = None,
) -> Checkpoint:
    """Run one cycle: search, repost new tweets, then advance the cursor.

    Parameters
    ----------
    store: CheckpointStore
        Where progress is read from and written to.
    source: TwitterSource
        Anything with ``search(query, since_id=, start_time=)`` and
        ``get_item(id)``.
    fetcher: MediaFetcher
        Anything with ``fetch(url) -> path``.
    publisher: MastodonPublisher
        Anything with ``publish(text, description, media_path)``.
    tag: str
        Search query.
    now: datetime, optional
        Reference time for the first-run search window. Defaults to the
        current UTC time.

    Returns
    -------
    Checkpoint
        The state after the cycle, as persisted.

    Any error from the collaborators propagates. Items handled before the
    error stay recorded, but the cursor is not advanced, so the next cycle
    searches the same window again and skips what is already in the ledger.
    """
    checkpoint = store.load()

    if checkpoint.last_processed_id:
        batch = source.search(tag, since_id=checkpoint.last_processed_id)
    else:
        now = now or datetime.now(timezone.utc)
        batch = source.search(tag, start_time=now - BOOTSTRAP_WINDOW)

    for hit in batch:
        if checkpoint.is_processed(hit.id):
            logger.info("Ignoring already processed id %s", hit.id)
            continue

        logger.info("Processing tweet with id %s", hit.id)
        item = source.get_item(hit.id)
        media = item.first_media
        if item.is_reshare or media is None:
            logger.info("Ignoring retweets and tweets without media (%s)", hit.id)
        else:
            path = fetcher.fetch(media.url)
            publisher.publish(modified_text(hit.text, hit.id), media.alt_text or "", path)

        # Persist straight away so a crash later in the batch cannot repost.
        checkpoint.record(hit.id)
        store.save(checkpoint)

    newest_id = batch.newest_id
    if newest_id:
        logger.info("Successfully processed, setting last id %s", newest_id)
        checkpoint.last_processed_id = newest_id
    else:
        logger.info("No matching tweets, keeping last id %s", checkpoint.last_processed_id)
    store.save(checkpoint)
    logger.info("Saved data file: %s", store.path)
    return checkpoint


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Repost tagged tweets with images to a Mastodon account."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit instead of polling forever",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log what would be posted instead of posting (overrides DRY_RUN)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between cycles (overrides POLL_INTERVAL, default: 300)",
    )
    parser.add_argument(
        "--data-file",
        default=None,
        help="Checkpoint JSON file (overrides DATA_FILE, default: toots.json)",
    )
    parser.add_argument(
        "--media-dir",
        default=None,
        help="Where downloaded media is stored (overrides MEDIA_DIR, default: scheduled/media)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="dotenv file to load before reading the environment (default: .env)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Let command-line flags win over environment values."""
    if args.dry_run is not None:
        settings.dry_run = args.dry_run
    if args.interval is not None:
        if args.interval <= 0:
            raise ConfigError("--interval must be positive")
        settings.interval_seconds = args.interval
    if args.data_file:
        settings.data_file = args.data_file
    if args.media_dir:
        settings.media_dir = args.media_dir
    return settings


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)
    load_dotenv(args.env_file)
    try:
        settings = apply_overrides(load_settings(), args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    if settings.dry_run:
        logger.info("Dry run: nothing will be posted to %s", settings.masto_host)

    store = CheckpointStore(settings.data_file)
    source = TwitterSource(settings.twitter_bearer)
    fetcher = MediaFetcher(settings.media_dir, timeout=settings.http_timeout)
    publisher = MastodonPublisher(
        settings.masto_host,
        settings.masto_access_token,
        dry_run=settings.dry_run,
        timeout=settings.http_timeout,
    )

    def cycle() -> Checkpoint:
        return process_feed(store, source, fetcher, publisher, settings.twitter_tag)

    if args.once:
        cycle()
        return
    run_forever(cycle, settings.interval_seconds)


if __name__ == "__main__":
    main()
