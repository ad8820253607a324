import pytest

from tweetmirror.config import ConfigError, load_settings

BASE_ENV = {
    "MASTO_HOST": "https://mastodon.example/",
    "MASTO_ACCESS_TOKEN": "token",
    "TWITTER_BEARER": "bearer",
    "TWITTER_TAG": "#castles",
}


def test_load_settings_defaults():
    settings = load_settings(dict(BASE_ENV))
    assert settings.masto_host == "https://mastodon.example"
    assert settings.twitter_tag == "#castles"
    assert settings.interval_seconds == 300
    assert settings.data_file == "toots.json"
    assert settings.media_dir == "scheduled/media"
    assert settings.dry_run is False


def test_missing_keys_are_all_reported():
    """Every missing required key is named in the error."""
    env = dict(BASE_ENV)
    del env["TWITTER_BEARER"]
    env["TWITTER_TAG"] = "  "
    with pytest.raises(ConfigError) as excinfo:
        load_settings(env)
    assert "TWITTER_BEARER" in str(excinfo.value)
    assert "TWITTER_TAG" in str(excinfo.value)


def test_optional_settings_parsed():
    env = dict(BASE_ENV, POLL_INTERVAL="60", DRY_RUN="Yes", HTTP_TIMEOUT="5.5",
               DATA_FILE="state.json", MEDIA_DIR="media")
    settings = load_settings(env)
    assert settings.interval_seconds == 60
    assert settings.dry_run is True
    assert settings.http_timeout == 5.5
    assert settings.data_file == "state.json"
    assert settings.media_dir == "media"


@pytest.mark.parametrize("value", ["soon", "0", "-5"])
def test_bad_interval_rejected(value):
    with pytest.raises(ConfigError):
        load_settings(dict(BASE_ENV, POLL_INTERVAL=value))
