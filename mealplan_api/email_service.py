"""
Email service for weekly plan links.

Every week each customer gets a link to their plan editor. Sends real emails
via SMTP when configured, falls back to logging in mock mode.

Environment variables:
- SMTP_HOST: SMTP server hostname (e.g., smtp.gmail.com)
- SMTP_PORT: SMTP server port (default: 587 for TLS)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password (for Gmail, use App Password)
- SMTP_FROM_EMAIL: Sender email address
- PLAN_EMAIL_SUBJECT: Subject line (default: "Your Weekly Meal Plan")
"""

import logging
import os
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from . import config, fields as f
from .domain import as_text
from .exceptions import ExternalStoreError
from .services.customers import email_from_identifier
from .store import RecordStore, StoreError

logger = logging.getLogger(__name__)

# SMTP configuration from environment
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")

PLAN_EMAIL_SUBJECT = os.getenv("PLAN_EMAIL_SUBJECT", "Your Weekly Meal Plan")


def is_email_configured() -> bool:
    """Check if SMTP is properly configured."""
    return all([SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD, SMTP_FROM_EMAIL])


def send_plan_link_email(
    to_email: str,
    token: str,
    customer_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Send a customer the link to this week's plan editor.

    Args:
        to_email: Customer's email address
        token: Customer's plan token
        customer_name: Optional name for the greeting

    Returns:
        dict with status and details
    """
    plan_url = config.build_plan_url(token)
    greeting = f"Hi {customer_name}," if customer_name else "Hi,"
    subject = PLAN_EMAIL_SUBJECT

    body_text = f"""{greeting}

Your meals for the coming week are ready. You can swap proteins, sauces and
sides or change how many servings you get here:

{plan_url}

Enjoy!
"""

    body_html = f"""<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
<p>{greeting}</p>
<p>Your meals for the coming week are ready. You can swap proteins, sauces and sides or change how many servings you get.</p>
<p style="margin-top: 24px;"><a href="{plan_url}" style="background-color: #2e7d32; color: white; padding: 14px 28px; text-decoration: none; display: inline-block; border-radius: 4px; font-weight: 500;">Edit your plan</a></p>
<p style="color: #666; font-size: 13px;">Or copy this link: {plan_url}</p>
</body>
</html>
"""

    if not is_email_configured():
        # Mock mode - just log the email
        logger.info("MOCK EMAIL: Subject: %s | Body: %s", subject, body_text[:200] + "...")
        logger.debug("MOCK EMAIL recipient: %s", to_email)
        return {
            "status": "sent",
            "to_email": to_email,
            "subject": subject,
            "plan_url": plan_url,
            "mock": True,
            "message": "Email logged (SMTP not configured)",
        }

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = SMTP_FROM_EMAIL
        msg["To"] = to_email

        msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        context = ssl.create_default_context()
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            server.starttls(context=context)
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.sendmail(SMTP_FROM_EMAIL, to_email, msg.as_string())

        logger.info("Plan link email sent")
        logger.debug("Plan link email recipient: %s", to_email)

        return {
            "status": "sent",
            "to_email": to_email,
            "subject": subject,
            "plan_url": plan_url,
            "mock": False,
            "message": "Email sent successfully",
        }

    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send plan link email: %s", str(e))
        return {
            "status": "error",
            "to_email": to_email,
            "error": str(e),
            "mock": False,
            "message": f"Failed to send email: {str(e)}",
        }


def send_weekly_plan_emails(store: RecordStore) -> Dict[str, Any]:
    """
    Email every customer their plan link.

    Customers without a token or an email are skipped. One failed send does
    not stop the others.

    Raises:
        ExternalStoreError: the customer list could not be loaded
    """
    try:
        customers = store.list(f.CUSTOMERS_TABLE)
    except StoreError as e:
        logger.error("Could not load customers for weekly emails: %s", e)
        raise ExternalStoreError("Could not load customers", details=str(e)) from e

    sent = failed = skipped = 0
    seen_tokens = set()
    for record in customers:
        token = as_text(record.fields.get(f.CUSTOMER_TOKEN))
        email = as_text(record.fields.get(f.CUSTOMER_EMAIL)) or email_from_identifier(
            as_text(record.fields.get(f.CUSTOMER_CLIENT_IDENTIFIER))
        )
        if not token or not email or token in seen_tokens:
            skipped += 1
            continue
        seen_tokens.add(token)

        result = send_plan_link_email(email, token, as_text(record.fields.get(f.CUSTOMER_NAME)))
        if result["status"] == "sent":
            sent += 1
        else:
            failed += 1

    logger.info("Weekly plan emails: %d sent, %d failed, %d skipped", sent, failed, skipped)
    return {
        "status": "completed",
        "sent": sent,
        "failed": failed,
        "skipped": skipped,
        "mock": not is_email_configured(),
    }
