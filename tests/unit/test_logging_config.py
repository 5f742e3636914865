"""
Unit tests for logging configuration processors.
"""

import logging

from callscribe.logging_config import (
    MASK,
    add_app_context,
    configure_logging,
    mask_secrets,
)


def test_add_app_context():
    event = add_app_context(None, "info", {"event": "Call initiated"})

    assert event["app"] == "callscribe"


def test_mask_secrets_top_level_and_nested():
    event = mask_secrets(
        None,
        "info",
        {
            "event": "Client created",
            "api_key": "dg-secret",
            "Authorization": "Token dg-secret",
            "headers": {"authorization": "Basic abc", "accept": "application/json"},
            "call_uuid": "abc",
        },
    )

    assert event["api_key"] == MASK
    assert event["Authorization"] == MASK
    assert event["headers"] == {"authorization": MASK, "accept": "application/json"}
    assert event["call_uuid"] == "abc"


def test_configure_logging_sets_levels():
    configure_logging("DEBUG", "production")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert len(logging.getLogger().handlers) == 1
