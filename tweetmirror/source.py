"""Search tweets with the Twitter v2 API via tweepy.

The search endpoint is consumed through :class:`tweepy.Paginator`, which
fetches pages on demand. :class:`SearchBatch` exposes that as a lazy,
forward-only sequence of :class:`SourceItem` and only reveals the batch's
``newest_id`` once every page has been read, because the caller may not move
its cursor before then.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, List, Optional

import tweepy

logger = logging.getLogger(__name__)

TWEET_EXPANSIONS = ["attachments.media_keys", "author_id", "referenced_tweets.id"]
MEDIA_FIELDS = ["url", "alt_text", "preview_image_url"]
PAGE_SIZE = 100  # maximum allowed by search_recent_tweets


@dataclass
class MediaRef:
    """A remote attachment and its accessibility description."""

    url: str
    alt_text: str = ""


@dataclass
class SourceItem:
    """A single tweet as far as the bridge cares about it.

    Search results only carry ``id`` and ``text``; ``is_reshare`` (the tweet
    references another one) and ``media`` are filled in by
    :meth:`TwitterSource.get_item`.
    """

    id: str
    text: str = ""
    is_reshare: bool = False
    media: List[MediaRef] = field(default_factory=list)

    @property
    def first_media(self) -> Optional[MediaRef]:
        return self.media[0] if self.media else None


def _meta_value(meta: Any, key: str) -> Any:
    if meta is None:
        return None
    if isinstance(meta, dict):
        return meta.get(key)
    return getattr(meta, key, None)


def _newer(a: Optional[str], b: Optional[str]) -> Optional[str]:
    """Return the larger of two snowflake ids (``None`` counts as smallest)."""
    if not a:
        return str(b) if b else None
    if not b:
        return a
    return a if int(a) >= int(b) else str(b)


class SearchBatch:
    """Lazy, single-pass view over the pages of one search.

    Parameters
    ----------
    pages: iterable
        Response pages as yielded by :class:`tweepy.Paginator`; each has
        ``data`` (a list of tweets or ``None``) and ``meta`` (a dict possibly
        holding ``newest_id``).
    """

    def __init__(self, pages: Iterable[Any]) -> None:
        self._pages = pages
        self._started = False
        self._drained = False
        self._newest_id: Optional[str] = None

    def __iter__(self) -> Iterator[SourceItem]:
        if self._started:
            raise RuntimeError("a search batch can only be iterated once")
        self._started = True
        return self._iterate()

    def _iterate(self) -> Iterator[SourceItem]:
        for page in self._pages:
            self._newest_id = _newer(
                self._newest_id, _meta_value(getattr(page, "meta", None), "newest_id")
            )
            for tweet in getattr(page, "data", None) or []:
                yield SourceItem(id=str(tweet.id), text=tweet.text or "")
        self._drained = True

    @property
    def drained(self) -> bool:
        return self._drained

    @property
    def newest_id(self) -> Optional[str]:
        """Newest tweet id in the batch, ``None`` if nothing matched.

        Raises
        ------
        RuntimeError
            If the batch has not been iterated to the end yet.
        """
        if not self._drained:
            raise RuntimeError("newest_id is only known once the batch is drained")
        return self._newest_id


class TwitterSource:
    """Thin wrapper around :class:`tweepy.Client` for search and lookup."""

    def __init__(self, bearer_token: str, client: Any | None = None) -> None:
        self.client = client or tweepy.Client(bearer_token=bearer_token)

    def search(
        self,
        query: str,
        since_id: str | None = None,
        start_time: datetime | None = None,
    ) -> SearchBatch:
        """Search recent tweets matching ``query``.

        Pass ``since_id`` to resume after a cursor, or ``start_time`` to
        bootstrap from a point in time. Nothing is requested until the
        returned batch is iterated.
        """
        params: dict = {"max_results": PAGE_SIZE}
        if since_id:
            params["since_id"] = since_id
        elif start_time is not None:
            params["start_time"] = start_time
        logger.info("Searching twitter for %s (%s)", query, params)
        return SearchBatch(
            tweepy.Paginator(self.client.search_recent_tweets, query, **params)
        )

    def get_item(self, item_id: str) -> SourceItem:
        """Fetch one tweet with its media, author and reference expansions."""
        response = self.client.get_tweet(
            item_id,
            expansions=TWEET_EXPANSIONS,
            media_fields=MEDIA_FIELDS,
        )
        tweet = response.data
        if tweet is None:
            logger.warning("Tweet %s is no longer available: %s", item_id, response.errors)
            return SourceItem(id=str(item_id))
        media: List[MediaRef] = []
        for entry in (response.includes or {}).get("media") or []:
            url = getattr(entry, "url", None) or getattr(entry, "preview_image_url", None)
            if url:
                media.append(MediaRef(url=url, alt_text=getattr(entry, "alt_text", None) or ""))
        return SourceItem(
            id=str(tweet.id),
            text=tweet.text or "",
            is_reshare=bool(getattr(tweet, "referenced_tweets", None)),
            media=media,
        )
