"""Unit tests for logging setup and secret redaction."""

import json
import logging

import pytest

from now_playing.logging_config import LOG_FILE_NAME, get_logger, log_with_context, setup_logging
from now_playing.middleware.redaction import REDACTED, redact_headers, redact_url


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_log_line_carries_context(tmp_path, restore_root_logger):
    setup_logging("warning", tmp_path)
    logger = get_logger("now_playing.test")

    log_with_context(logger, "info", "Result cached", ttl_seconds=180, event_type="result_cache_write")
    for handler in logging.getLogger().handlers:
        handler.flush()

    record = json.loads((tmp_path / LOG_FILE_NAME).read_text().splitlines()[-1])
    assert record["message"] == "Result cached"
    assert record["level"] == "INFO"
    assert record["logger"] == "now_playing.test"
    assert record["app"] == "now-playing"
    assert record["ttl_seconds"] == 180
    assert record["event_type"] == "result_cache_write"


def test_unknown_level_falls_back_to_info(tmp_path, restore_root_logger):
    root = setup_logging("chatty", tmp_path)

    console = [h for h in root.handlers if type(h) is logging.StreamHandler]
    assert console[0].level == logging.INFO


def test_redact_url_masks_secrets():
    url = "https://accounts.example.com/cb?code=abc123&state=xyz&refresh_token=r-1"

    redacted = redact_url(url)

    assert "abc123" not in redacted
    assert "r-1" not in redacted
    assert "state=xyz" in redacted
    assert REDACTED in redacted


def test_redact_url_without_query():
    url = "https://api.music.apple.com/v1/me/recent/played/tracks"

    assert redact_url(url) == url


def test_redact_headers():
    headers = {
        "Authorization": "Bearer developer-token",
        "Music-User-Token": "user-token",
        "Accept": "application/json",
    }

    assert redact_headers(headers) == {
        "Authorization": REDACTED,
        "Music-User-Token": REDACTED,
        "Accept": "application/json",
    }
