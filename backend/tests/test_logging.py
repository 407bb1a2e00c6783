"""
Tests for PII masking in log lines.
"""

from app.core.logging import mask_email, mask_pii


def test_mask_email():
    assert mask_email("ada@example.com") == "a***@example.com"
    assert mask_email("not-an-email") == "***"
    assert mask_email("") == "***"


def test_mask_pii_processor():
    event = mask_pii(None, "info", {
        "event": "registration_created",
        "email": "ada@example.com",
        "to": "a***@example.com",
        "phone_number": "08012345678",
        "event_id": "lagos-test",
    })
    assert event["email"] == "a***@example.com"
    assert event["to"] == "a***@example.com"
    assert event["phone_number"] == "***678"
    assert event["event_id"] == "lagos-test"
