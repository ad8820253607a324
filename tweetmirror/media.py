"""Download tweet attachments to local storage."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def filename_from_url(url: str) -> str:
    """Return the last path segment of ``url``, ignoring any query string.

    >>> filename_from_url("https://pbs.twimg.com/media/abc.jpg?name=large")
    'abc.jpg'
    """
    name = os.path.basename(urlsplit(url).path)
    if not name:
        raise ValueError(f"cannot derive a file name from {url!r}")
    return name


class MediaFetcher:
    """Stream remote media into ``media_dir``.

    Parameters
    ----------
    media_dir: str or Path
        Target directory, created on first use.
    session: requests.Session, optional
        Session to download with. A new one is created when omitted.
    timeout: float, optional
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        media_dir: str | Path,
        session: requests.Session | None = None,
        timeout: float | None = 30,
    ) -> None:
        self.media_dir = Path(media_dir)
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, url: str) -> Path:
        """Download ``url`` and return the local path.

        Raises
        ------
        requests.RequestException
            On connection problems or a non-2xx response.
        """
        self.media_dir.mkdir(parents=True, exist_ok=True)
        dest = self.media_dir / filename_from_url(url)
        logger.info("Downloading %s -> %s", url, dest)
        response = self.session.get(url, stream=True, timeout=self.timeout)
        try:
            response.raise_for_status()
            with dest.open("wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except Exception:
            dest.unlink(missing_ok=True)
            raise
        finally:
            response.close()
        return dest
