import pytest
import requests

from tweetmirror.publisher import MastodonPublisher, PublishError

MEDIA_URL = "https://files.masto.example/abc.jpg"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        files = kwargs.get("files")
        if files:
            # read while the handle is still open
            name, fh = files["file"]
            kwargs = dict(kwargs, files={"file": (name, fh.read())})
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "abc.jpg"
    path.write_bytes(b"jpeg bytes")
    return path


def test_publish_uploads_media_then_posts_status(image):
    """A processed upload is attached straight away to a public status."""
    session = FakeSession([
        FakeResponse({"id": "m1", "url": MEDIA_URL}),
        FakeResponse({"id": "s1"}),
    ])
    publisher = MastodonPublisher("https://masto.example/", "tok", session=session, timeout=7)

    assert publisher.publish("Caption", "alt text", image) == "s1"
    assert session.headers["Authorization"] == "Bearer tok"

    method, media_url, media_kwargs = session.calls[0]
    assert (method, media_url) == ("POST", "https://masto.example/api/v2/media")
    assert media_kwargs["files"] == {"file": ("abc.jpg", b"jpeg bytes")}
    assert media_kwargs["data"] == {"description": "alt text"}
    assert media_kwargs["timeout"] == 7

    method, status_url, status_kwargs = session.calls[1]
    assert (method, status_url) == ("POST", "https://masto.example/api/v1/statuses")
    assert status_kwargs["json"] == {
        "status": "Caption",
        "visibility": "public",
        "media_ids": ["m1"],
    }
    assert len(session.calls) == 2


def test_publish_waits_for_async_media_processing(image):
    """A 202 upload is polled until it has a URL before the status is created."""
    session = FakeSession([
        FakeResponse({"id": "m1", "url": None}, status_code=202),
        FakeResponse({"id": "m1", "url": None}, status_code=206),
        FakeResponse({"id": "m1", "url": MEDIA_URL}),
        FakeResponse({"id": "s1"}),
    ])
    publisher = MastodonPublisher(
        "https://masto.example", "tok", session=session, poll_interval=0
    )

    assert publisher.publish("Caption", "", image) == "s1"
    assert [(method, url) for method, url, _ in session.calls] == [
        ("POST", "https://masto.example/api/v2/media"),
        ("GET", "https://masto.example/api/v1/media/m1"),
        ("GET", "https://masto.example/api/v1/media/m1"),
        ("POST", "https://masto.example/api/v1/statuses"),
    ]


def test_media_never_processed_raises_without_posting(image):
    """Giving up on an unprocessed upload fails the publish, no status is made."""
    session = FakeSession(
        [FakeResponse({"id": "m1", "url": None}, status_code=202)]
        + [FakeResponse({"id": "m1", "url": None}, status_code=206)] * 3
    )
    publisher = MastodonPublisher(
        "https://masto.example", "tok", session=session, poll_interval=0, poll_attempts=3
    )

    with pytest.raises(PublishError):
        publisher.publish("Caption", "", image)
    assert len(session.calls) == 4
    assert all(url.endswith("/api/v1/media/m1") for _, url, _ in session.calls[1:])


def test_dry_run_makes_no_requests(image, caplog):
    """Dry run only logs the text it would post."""
    session = FakeSession([])
    publisher = MastodonPublisher("https://masto.example", "tok", dry_run=True, session=session)
    with caplog.at_level("INFO"):
        assert publisher.publish("Caption", "", image) is None
    assert session.calls == []
    assert "POSTING" in caplog.text


def test_missing_id_raises(image):
    session = FakeSession([FakeResponse({"error": "?"})])
    publisher = MastodonPublisher("https://masto.example", "tok", session=session)
    with pytest.raises(PublishError):
        publisher.publish("Caption", "", image)


def test_http_error_propagates(image):
    session = FakeSession([FakeResponse({"error": "nope"}, status_code=422)])
    publisher = MastodonPublisher("https://masto.example", "tok", session=session)
    with pytest.raises(requests.HTTPError):
        publisher.publish("Caption", "", image)
