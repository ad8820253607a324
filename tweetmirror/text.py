"""Turn a tweet's text into a Mastodon-ready caption.

A lot of tagged posts look like ``"A photo of #somecastle here #foo #bar"``.
The trailing run of hashtags is noise on the destination, so it is dropped,
while hashtags used mid-sentence keep their word and lose the ``#``.
Mentions and links are removed (they point back into Twitter and would be
meaningless or broken), and a link to the original tweet is appended.
"""

from __future__ import annotations

import re

STATUS_URL = "https://twitter.com/i/web/status/{id}"

# A run of hashtag tokens running up to the end of the text.
_TRAILING_HASHTAGS = re.compile(r"(?:(?:^|\s+)#\S*)+\s*$")
_MENTION = re.compile(r"@\S+")
_URL = re.compile(r"(?:https?|ftp)://\S+")


def status_url(item_id: str | int) -> str:
    """Return the permalink of a tweet."""
    return STATUS_URL.format(id=item_id)


def _strip_trailing_hashtags(text: str) -> str:
    return _TRAILING_HASHTAGS.sub("", text, count=1)


def modified_text(text: str, item_id: str | int) -> str:
    """Build the text to post for tweet ``item_id``.

    Steps, in order: strip the trailing hashtag run, remove the remaining
    ``#`` characters, drop ``@mentions``, drop ``http``/``https``/``ftp``
    URLs, trim. The permalink of the original tweet is always appended,
    separated by a blank line only when some text is left.

    >>> modified_text("A photo of #castle here #foo #bar", 42)
    'A photo of castle here\\n\\nhttps://twitter.com/i/web/status/42'
    """
    text = _strip_trailing_hashtags(text or "")
    text = text.replace("#", "")
    text = _MENTION.sub("", text)
    text = _URL.sub("", text)
    text = text.strip()
    return text + ("\n\n" if text else "") + status_url(item_id)
