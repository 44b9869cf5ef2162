# backend/services/mailer.py
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from azure.communication.email import EmailClient

from models import UserDetails
from utils.helpers import _require_env, load_app_settings, render_template

NO_REPLY_NOTICE = "\n\n---\n***Please do not reply to this email.***"

SUBJECTS = {
    "reports-only": "{first} {last} just completed a background check",
    "mixed": "Background Check Report - {first} {last}",
    "user-with-reports": "Your Background Check Report is Ready",
    "user-only": "Your Background Check Report is Ready",
}


def _as_list(recipients: Union[str, Sequence[str], None]) -> List[str]:
    if not recipients:
        return []
    if isinstance(recipients, str):
        return [recipients]
    return [r for r in recipients if r]


def classify_recipients(recipients: Union[str, Sequence[str]], reports_mailbox: str) -> str:
    """Pick the email variant from who is on the recipient list."""
    emails = _as_list(recipients)
    mailbox = reports_mailbox.lower()
    others = [e for e in emails if e.lower() != mailbox]
    if all(e.lower() == mailbox for e in emails):
        return "reports-only"
    if len(others) > 1:
        return "mixed"
    if len(others) == 1 and any(e.lower() == mailbox for e in emails):
        return "user-with-reports"
    return "user-only"


def render_email(email_type: str, user: UserDetails, pdf_url: str,
                 app_settings: Optional[dict] = None) -> Dict[str, str]:
    app_settings = app_settings or load_app_settings()
    variables = {
        "email_type": email_type,
        "user": user,
        "pdf_url": pdf_url,
        "brand_name": app_settings.get("brand_name", ""),
        "support_email": app_settings.get("support_email", ""),
        "expiry_hours": app_settings.get("sas_expiry_hours", 24),
        "year": datetime.now(timezone.utc).year,
    }
    subject = SUBJECTS.get(email_type, SUBJECTS["user-only"]).format(first=user.first_name, last=user.last_name)
    return {
        "subject": subject,
        "plain_text": render_template("report_email.txt.j2", variables).strip() + NO_REPLY_NOTICE,
        "html": render_template("report_email.html.j2", variables),
    }


def build_message(user: UserDetails, recipients: Union[str, Sequence[str]], pdf_url: str,
                  app_settings: Optional[dict] = None) -> dict:
    """ACS email message; the reports mailbox is always on the To line."""
    app_settings = app_settings or load_app_settings()
    mailbox = app_settings["reports_mailbox"]
    emails = _as_list(recipients)
    email_type = classify_recipients(emails, mailbox)
    content = render_email(email_type, user, pdf_url, app_settings)

    to: List[str] = [mailbox]
    for e in emails:
        if e.lower() not in (t.lower() for t in to):
            to.append(e)
    return {
        "senderAddress": os.getenv("ACS_SENDER_ADDRESS", app_settings["sender_address"]),
        "recipients": {"to": [{"address": a} for a in to]},
        "content": content,
    }


def send_report_email(user: UserDetails, recipients: Union[str, Sequence[str]], pdf_url: str,
                      *, email_client: Optional[EmailClient] = None, app_settings: Optional[dict] = None) -> dict:
    """Send through Azure Communication Services; SDK errors propagate."""
    message = build_message(user, recipients, pdf_url, app_settings)
    client = email_client or EmailClient.from_connection_string(_require_env("ACS_CONNECTION_STRING"))
    poller = client.begin_send(message)
    result = poller.result()
    logging.info(f"[mailer] sent report email to {len(message['recipients']['to'])} recipient(s)")
    return result if isinstance(result, dict) else {"status": str(result)}
