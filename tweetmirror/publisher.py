"""Post to Mastodon through its REST API.

``POST /api/v2/media`` uploads the image with its description. Larger files
are processed asynchronously: the server answers 202 with ``"url": null`` and
the attachment cannot be used until ``GET /api/v1/media/:id`` reports a URL.
``POST /api/v1/statuses`` then creates a public status referencing the
attachment. See https://docs.joinmastodon.org/methods/media/ for details.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

MEDIA_ENDPOINT = "/api/v2/media"
MEDIA_STATUS_ENDPOINT = "/api/v1/media/{id}"
STATUS_ENDPOINT = "/api/v1/statuses"

MEDIA_POLL_INTERVAL = 2  # seconds between processing checks
MEDIA_POLL_ATTEMPTS = 30


class PublishError(RuntimeError):
    """Raised when Mastodon accepts a request but returns no usable result."""


class MastodonPublisher:
    """Create image posts on a Mastodon account.

    Parameters
    ----------
    host: str
        Base URL of the instance, e.g. ``https://mastodon.social``.
    access_token: str
        Token of the account to post as.
    dry_run: bool, optional
        If True, :meth:`publish` only logs what it would post. Useful for
        testing configuration without side effects.
    session: requests.Session, optional
        Session used for all calls.
    timeout: float, optional
        Per-request timeout in seconds.
    poll_interval: float, optional
        Seconds to wait between checks on an attachment still processing.
    poll_attempts: int, optional
        How many checks to make before giving up on such an attachment.
    """

    def __init__(
        self,
        host: str,
        access_token: str,
        dry_run: bool = False,
        session: requests.Session | None = None,
        timeout: float | None = 30,
        poll_interval: float = MEDIA_POLL_INTERVAL,
        poll_attempts: int = MEDIA_POLL_ATTEMPTS,
    ) -> None:
        self.host = host.rstrip("/")
        self.dry_run = dry_run
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Dict[str, Any]:
        response = self.session.request(
            method, self.host + endpoint, timeout=self.timeout, **kwargs
        )
        if response.status_code >= 400:
            logger.error("%s returned %s: %s", endpoint, response.status_code, response.text[:500])
        response.raise_for_status()
        payload = response.json()
        if not payload.get("id"):
            raise PublishError(f"{endpoint} response has no id: {payload!r}")
        return payload

    def wait_for_processing(self, media_id: str) -> Dict[str, Any]:
        """Poll an attachment until Mastodon has finished processing it.

        Raises
        ------
        PublishError
            If the attachment still has no URL after ``poll_attempts`` checks.
        """
        endpoint = MEDIA_STATUS_ENDPOINT.format(id=media_id)
        for attempt in range(self.poll_attempts):
            time.sleep(self.poll_interval)
            payload = self._request("GET", endpoint)
            if payload.get("url"):
                return payload
            logger.info("Media %s still processing (check %d)", media_id, attempt + 1)
        raise PublishError(
            f"media {media_id} not processed after {self.poll_attempts} checks"
        )

    def upload_media(self, media_path: str | Path, description: str = "") -> str:
        """Upload an attachment and return its id once it is usable."""
        with Path(media_path).open("rb") as fh:
            payload = self._request(
                "POST",
                MEDIA_ENDPOINT,
                files={"file": (Path(media_path).name, fh)},
                data={"description": description},
            )
        media_id = str(payload["id"])
        if not payload.get("url"):
            self.wait_for_processing(media_id)
        return media_id

    def publish(
        self, text: str, description: str, media_path: str | Path
    ) -> Optional[str]:
        """Post ``text`` with the image at ``media_path``.

        Returns the id of the new status, or ``None`` in dry-run mode.
        """
        if self.dry_run:
            logger.info("POSTING (dry run): %r", text)
            return None
        media_id = self.upload_media(media_path, description)
        status = self._request(
            "POST",
            STATUS_ENDPOINT,
            json={"status": text, "visibility": "public", "media_ids": [media_id]},
        )
        logger.info("Posted status %s", status["id"])
        return str(status["id"])
