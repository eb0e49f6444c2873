"""Email client using Resend API.

Delivery is best effort: every public function returns a bool and never
raises, so a mail outage can't fail a billing tick or a deployment.
"""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

import resend

from src.cars.core.config import get_settings
from src.cars.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)


def send_email(recipients: list[str], subject: str, body: str, email_type: str) -> bool:
    """Send a plain-text notification (with an HTML rendering) to recipients.

    Args:
        recipients: Email addresses; empty list is a no-op
        subject: Subject line
        body: Plain-text body
        email_type: Short tag used in logs (e.g. "billing_alert")

    Returns:
        True if the email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()
    to = sorted({r for r in recipients if r})
    if not to:
        logger.info("No recipients for email", email_type=email_type)
        return True

    if not settings.resend_api_key:
        logger.warning(
            "RESEND_API_KEY not set - email not sent",
            recipients=len(to),
            email_type=email_type,
            subject=subject,
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": to,
                "subject": subject,
                "text": body,
                "html": _render_html(body),
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Email sent", recipients=len(to), email_type=email_type)
        return True
    except FuturesTimeoutError:
        logger.error(
            "Email send timed out",
            email_type=email_type,
            timeout=settings.email_send_timeout_seconds,
        )
        return False
    except Exception as e:
        logger.error("Failed to send email", email_type=email_type, error=str(e))
        return False


def _render_html(body: str) -> str:
    """Wrap an escaped plain-text body in a minimal HTML document."""
    paragraphs = "".join(
        f"<p>{html.escape(block).replace(chr(10), '<br>')}</p>" for block in body.split("\n\n")
    )
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    {paragraphs}
</body>
</html>"""
