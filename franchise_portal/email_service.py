"""
Templated Email Service using Resend

Pipeline: resolve stored template (country override, then global) ->
substitute merge tags -> wrap in the branded layout -> deliver.
Nothing in this module raises to callers on delivery problems; every send
reports a boolean outcome and logs the detail.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

import resend

from .config import FROM_EMAIL, FROM_NAME, get_resend_api_key
from .domain.email.repository import TemplateRepository
from .domain.email.schemas import EmailTemplate
from .email_templates import LegacyEmail, dynamic_layout
from .errors import EmailNotConfiguredError
from .utils.formatters import escape_html

logger = logging.getLogger(__name__)


def _field(name: str) -> Callable[[dict], str]:
    def accessor(data: dict) -> str:
        value = data.get(name)
        return str(value) if value else ""

    return accessor


def _current_year(data: dict) -> str:
    return str(datetime.now().year)


# Recognized merge tags. Anything else in {{...}} is left verbatim.
MERGE_TAGS: dict[str, Callable[[dict], str]] = {
    name: _field(name)
    for name in (
        "customerName",
        "customerEmail",
        "customerPhone",
        "parentName",
        "parentEmail",
        "parentPhone",
        "childName",
        "childGrade",
        "locationName",
        "locationAddress",
        "locationPhone",
        "locationEmail",
        "bookingDate",
        "bookingTime",
        "bookingReference",
        "notes",
        "portalUrl",
        "inviteUrl",
        "inviteeName",
        "role",
        "formType",
        "enquiryMessage",
        "sessionDate",
        "sessionTime",
        "previousDate",
        "previousTime",
        "reason",
        "amount",
        "weeklyAmount",
        "joiningFee",
        "refundAmount",
    )
}
MERGE_TAGS["year"] = _current_year


def render_merge_tags(
    text: Optional[str],
    data: Optional[dict],
    *,
    escape: bool = False,
    allow_year_override: bool = False,
) -> str:
    """
    Replace every recognized {{token}} in text with its value from data.

    Args:
        text: Subject or body text
        data: Flat merge data map
        escape: HTML-escape substituted values (for bodies)
        allow_year_override: Honour data["year"] instead of the current year

    Returns:
        Rendered text; missing values render as empty string
    """
    if not text:
        return ""
    data = data or {}
    rendered = text
    for name, accessor in MERGE_TAGS.items():
        token = "{{" + name + "}}"
        if token not in rendered:
            continue
        if name == "year" and allow_year_override and data.get("year"):
            value = str(data["year"])
        else:
            value = accessor(data)
        if escape:
            value = escape_html(value)
        rendered = rendered.replace(token, value)
    return rendered


def resolve_template(db, template_key: str, country: Optional[str] = None) -> Optional[EmailTemplate]:
    """
    Pick the template variant to use for a send.

    A country override (key_COUNTRY) wins unless it is explicitly disabled;
    otherwise the global template is used whatever its enabled flag says.
    """
    if country:
        override = TemplateRepository.get_template(db, f"{template_key}_{country.upper()}")
        if override and override.enabled:
            logger.debug(f"Using country template {template_key}_{country.upper()}")
            return override

    return TemplateRepository.get_template(db, template_key)


def format_sender(from_name: Optional[str] = None) -> str:
    return f"{from_name or FROM_NAME} <{FROM_EMAIL}>"


def deliver(message: dict) -> dict:
    """
    Send a prepared message through Resend.

    Raises:
        EmailNotConfiguredError: If RESEND_API_KEY is not set
        Exception: Any transport failure
    """
    api_key = get_resend_api_key()
    if not api_key:
        raise EmailNotConfiguredError("RESEND_API_KEY is not configured")

    resend.api_key = api_key
    return resend.Emails.send(message)


def build_message(
    to: str,
    subject: str,
    html: str,
    text: str,
    reply_to: Optional[str] = None,
    from_name: Optional[str] = None,
) -> dict:
    message = {
        "from": format_sender(from_name),
        "to": [to],
        "subject": subject,
        "text": text,
        "html": html,
    }
    if reply_to:
        message["reply_to"] = reply_to
    return message


async def send_templated_email(
    db,
    to: str,
    template_key: str,
    merge_data: dict,
    country: Optional[str] = None,
    reply_to: Optional[str] = None,
    from_name: Optional[str] = None,
    allow_year_override: bool = False,
) -> bool:
    """
    Send one email rendered from a stored template.

    Returns:
        True when the transport accepted the message, False otherwise
    """
    try:
        template = resolve_template(db, template_key, country)
    except Exception as e:
        logger.error(f"❌ Could not read email template '{template_key}' for {to}: {e}")
        return False
    if not template:
        logger.warning(f"⚠️ Email template '{template_key}' not found (country={country}), skipping send to {to}")
        return False

    subject = render_merge_tags(template.subject, merge_data, allow_year_override=allow_year_override)
    body = render_merge_tags(
        template.body, merge_data, escape=True, allow_year_override=allow_year_override
    )
    header_title = render_merge_tags(
        template.headerTitle, merge_data, escape=True, allow_year_override=allow_year_override
    )
    header_subtitle = render_merge_tags(
        template.headerSubtitle, merge_data, escape=True, allow_year_override=allow_year_override
    )
    html = dynamic_layout(body, header_title, header_subtitle, template.headerBg)

    message = build_message(to, subject, html, subject, reply_to=reply_to, from_name=from_name)

    try:
        response = deliver(message)
    except EmailNotConfiguredError:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        return False
    except Exception as e:
        logger.error(f"❌ Email send error for '{template_key}' to {to}: {e}")
        return False

    logger.info(f"✅ Email '{template_key}' sent to {to}: {response}")
    return True


async def send_legacy_email(
    to: str,
    email: LegacyEmail,
    reply_to: Optional[str] = None,
    from_name: Optional[str] = None,
) -> bool:
    """Deliver a code-embedded fallback email, logging instead of raising"""
    message = build_message(
        to, email.subject, email.html, email.text, reply_to=reply_to, from_name=from_name
    )
    try:
        deliver(message)
    except EmailNotConfiguredError:
        logger.error("❌ Legacy email not sent - RESEND_API_KEY missing")
        return False
    except Exception as e:
        logger.error(f"❌ Legacy email send error to {to}: {e}")
        return False

    logger.info(f"✅ Legacy email '{email.subject}' sent to {to}")
    return True
