import os
from unittest.mock import MagicMock, patch

import pytest

from models import UserDetails
from services.mailer import NO_REPLY_NOTICE, build_message, classify_recipients, render_email, send_report_email
from utils.helpers import load_app_settings

MAILBOX = "reports@example.com"
USER = UserDetails(first_name="Jane", last_name="Doe", email="jane@example.com")
PDF_URL = "https://acct.blob.core.windows.net/reports/x.pdf?sig=abc"


@pytest.fixture
def settings():
    return {**load_app_settings(), "reports_mailbox": MAILBOX, "brand_name": "Tenant Screening"}


@pytest.mark.parametrize(
    "recipients,expected",
    [
        ([MAILBOX], "reports-only"),
        (["REPORTS@example.com"], "reports-only"),
        (["jane@example.com", MAILBOX], "user-with-reports"),
        (["jane@example.com"], "user-only"),
        ("jane@example.com", "user-only"),
        (["jane@example.com", "landlord@example.com"], "mixed"),
        (["jane@example.com", "landlord@example.com", MAILBOX], "mixed"),
    ],
)
def test_classify_recipients(recipients, expected):
    assert classify_recipients(recipients, MAILBOX) == expected


def test_message_always_includes_reports_mailbox(settings):
    with patch.dict(os.environ, {"ACS_SENDER_ADDRESS": "DoNotReply@tenant.test"}):
        message = build_message(USER, ["jane@example.com", "Reports@Example.com"], PDF_URL, settings)

    addresses = [r["address"] for r in message["recipients"]["to"]]
    assert addresses == [MAILBOX, "jane@example.com"]
    assert message["senderAddress"] == "DoNotReply@tenant.test"
    assert message["content"]["subject"] == "Your Background Check Report is Ready"


def test_plain_text_ends_with_no_reply_notice(settings):
    content = render_email("user-only", USER, PDF_URL, settings)
    assert content["plain_text"].endswith(NO_REPLY_NOTICE)
    assert PDF_URL in content["plain_text"]
    assert "expire in 24 hours" in content["plain_text"]


def test_reports_only_variant(settings):
    content = render_email("reports-only", USER, PDF_URL, settings)
    assert content["subject"] == "Jane Doe just completed a background check"
    assert "Jane Doe just completed their background check." in content["plain_text"]
    assert "View Background Check Report" in content["html"]


def test_html_is_escaped(settings):
    user = UserDetails(first_name="<b>Jane</b>", last_name="Doe")
    content = render_email("mixed", user, PDF_URL, settings)
    assert "<b>Jane</b>" not in content["html"]
    assert "&lt;b&gt;Jane&lt;/b&gt;" in content["html"]


def test_send_report_email_uses_client(settings):
    client = MagicMock()
    client.begin_send.return_value.result.return_value = {"id": "op-1", "status": "Succeeded"}

    result = send_report_email(USER, ["jane@example.com"], PDF_URL, email_client=client, app_settings=settings)

    assert result == {"id": "op-1", "status": "Succeeded"}
    message = client.begin_send.call_args[0][0]
    assert message["content"]["subject"] == "Your Background Check Report is Ready"


def test_send_report_email_requires_connection_string(settings):
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(RuntimeError):
            send_report_email(USER, ["jane@example.com"], PDF_URL, app_settings=settings)
