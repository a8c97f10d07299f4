import logging

from core.logging_config import REDACTED, configure_logging, redact_secrets


def test_redacts_top_level_and_header_secrets():
    event = redact_secrets(None, "info", {
        "event": "S3 request",
        "secret_access_key": "sk",
        "headers": {"Authorization": "AWS4-HMAC-SHA256 ...", "host": "h"},
        "key": "img/a.png",
    })
    assert event["secret_access_key"] == REDACTED
    assert event["headers"] == {"Authorization": REDACTED, "host": "h"}
    assert event["key"] == "img/a.png"


def test_explicit_level_wins():
    configure_logging("warning")
    try:
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        configure_logging()
