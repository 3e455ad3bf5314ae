"""
Email Layouts and Built-in Templates

Two layout families live here:
- dynamic_layout wraps the already-rendered body of a stored template
- legacy_* layouts are fixed, code-embedded emails used when the template
  store cannot supply a template. They never read from Firestore.
"""

from datetime import datetime
from typing import NamedTuple, Optional

from .config import PORTAL_URL
from .utils.formatters import escape_html

# Brand colors
THEME = {
    "primary": "#2d5a3d",
    "accent": "#c8a96e",
    "ink": "#0a0a0f",
    "background": "#f5f3ee",
    "card_bg": "#ffffff",
    "text": "#444444",
    "muted": "#999999",
}

DEFAULT_HEADER_BG = "linear-gradient(135deg, #2d5a3d 0%, #1f3f2b 100%)"

BRAND_NAME = "Success Tutoring"


class LegacyEmail(NamedTuple):
    subject: str
    html: str
    text: str


def dynamic_layout(
    body_html: str,
    header_title: Optional[str],
    header_subtitle: Optional[str],
    header_bg: Optional[str],
) -> str:
    """Wrap a rendered template body in the branded document shell"""
    background = header_bg or DEFAULT_HEADER_BG
    subtitle_html = f'<p class="subtitle">{header_subtitle}</p>' if header_subtitle else ""
    year = datetime.now().year

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>
    body {{ margin: 0; padding: 0; background: {THEME['background']}; font-family: Arial, sans-serif; }}
    .wrapper {{ max-width: 560px; margin: 40px auto; background: {THEME['card_bg']}; border-radius: 16px; overflow: hidden; }}
    .header {{ padding: 40px; text-align: center; }}
    .header h1 {{ color: #ffffff; font-size: 24px; margin: 0; }}
    .header .subtitle {{ color: rgba(255,255,255,0.75); font-size: 14px; margin: 8px 0 0; }}
    .body {{ padding: 40px; color: {THEME['text']}; font-size: 15px; line-height: 1.7; }}
    .detail-card {{ background: {THEME['background']}; border-radius: 12px; padding: 24px; margin: 24px 0; }}
    .detail-label {{ font-weight: 600; color: {THEME['primary']}; }}
    .cta {{ text-align: center; margin: 32px 0; }}
    .cta a {{ display: inline-block; background: {THEME['primary']}; color: #ffffff; text-decoration: none; padding: 14px 32px; border-radius: 10px; font-weight: 600; }}
    .footer {{ background: {THEME['background']}; padding: 24px; text-align: center; font-size: 12px; color: {THEME['muted']}; }}
  </style>
</head>
<body>
  <div class="wrapper">
    <div class="header" style="background: {background};">
      <h1>{header_title or ''}</h1>
      {subtitle_html}
    </div>
    <div class="body">
{body_html}
    </div>
    <div class="footer">&copy; {year} {BRAND_NAME}. All rights reserved.</div>
  </div>
</body>
</html>
"""


def _legacy_shell(title: str, subtitle: str, content: str, header_bg: str, title_color: str) -> str:
    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <style>
    body {{ margin: 0; padding: 0; background: #f5f3ee; font-family: Arial, sans-serif; }}
    .wrapper {{ max-width: 560px; margin: 40px auto; background: #ffffff; border-radius: 16px; overflow: hidden; }}
    .header {{ background: {header_bg}; padding: 40px; text-align: center; }}
    .header h1 {{ color: {title_color}; font-size: 24px; margin: 0; }}
    .header p {{ color: rgba(255,255,255,0.7); font-size: 14px; margin: 8px 0 0; }}
    .body {{ padding: 40px; }}
    .body p {{ color: #444; font-size: 15px; line-height: 1.7; }}
    .detail-card {{ background: #f5f3ee; border-radius: 12px; padding: 24px; margin: 24px 0; }}
    .detail-row {{ margin-bottom: 12px; font-size: 14px; color: #333; }}
    .detail-label {{ font-weight: 600; color: #2d5a3d; }}
    .cta {{ text-align: center; margin: 32px 0; }}
    .cta a {{ display: inline-block; background: #2d5a3d; color: #ffffff; text-decoration: none; padding: 14px 32px; border-radius: 10px; font-weight: 600; }}
    .footer {{ background: #f5f3ee; padding: 24px; text-align: center; font-size: 12px; color: #999; }}
  </style>
</head>
<body>
  <div class="wrapper">
    <div class="header">
      <h1>{title}</h1>
      <p>{subtitle}</p>
    </div>
    <div class="body">
{content}
    </div>
    <div class="footer">&copy; {year} {BRAND_NAME}. All rights reserved.</div>
  </div>
</body>
</html>
"""


def _detail_rows(rows: list[tuple[str, Optional[str]]]) -> str:
    return "\n".join(
        f'<div class="detail-row"><span class="detail-label">{label}: </span>{escape_html(value)}</div>'
        for label, value in rows
        if value
    )


def legacy_location_welcome(location: dict, reminder: bool = False) -> LegacyEmail:
    """Fixed welcome email for a newly created franchise location"""
    name = location.get("name") or ""
    safe_name = escape_html(name)
    details = _detail_rows(
        [
            ("Location", name),
            ("Address", location.get("address")),
            ("Phone", location.get("phone")),
            ("Email", location.get("email")),
        ]
    )
    content = f"""      <p>Hi there,</p>
      <p>Your franchise location <strong>{safe_name}</strong> has been successfully added to the system. Your partner portal is now active.</p>
      <div class="detail-card">
        {details}
      </div>
      <p>Sign in to your Partner Portal to set your availability and manage booking settings.</p>
      <div class="cta"><a href="{PORTAL_URL}">Access Partner Portal &rarr;</a></div>"""

    if reminder:
        subject = f"Reminder: Access your partner portal — {name}"
    else:
        subject = f'Welcome! Your franchise location "{name}" is now active'

    html = _legacy_shell(
        "Welcome to the Network!",
        "Your franchise location has been created",
        content,
        THEME["primary"],
        "#ffffff",
    )
    text = f'Welcome! Your location "{name}" has been created. Access your portal: {PORTAL_URL}'
    return LegacyEmail(subject, html, text)


def legacy_admin_invite(invite: dict, invite_url: str) -> LegacyEmail:
    """Fixed invitation to the HQ portal"""
    name = invite.get("name") or ""
    content = f"""      <p>Hi {escape_html(name)},</p>
      <p>You've been invited to join the <strong>{BRAND_NAME} HQ Portal</strong>. You'll be able to add and edit franchise locations.</p>
      <p>Click the button below to sign in with your Google account and get started.</p>
      <div class="cta"><a href="{escape_html(invite_url)}">Accept Invite &amp; Sign In &rarr;</a></div>
      <p style="font-size: 13px; color: #888;">If you weren't expecting this invite, you can safely ignore this email.</p>"""

    html = _legacy_shell(
        "You've been invited!", f"{BRAND_NAME} HQ Portal", content, THEME["ink"], THEME["accent"]
    )
    text = (
        f"Hi {name}, you've been invited to join the {BRAND_NAME} HQ Portal. "
        f"Sign in here: {invite_url}"
    )
    return LegacyEmail(f"You've been invited to the {BRAND_NAME} HQ Portal", html, text)


def legacy_booking_customer(merge_data: dict) -> LegacyEmail:
    """Fixed assessment confirmation for the customer"""
    reference = merge_data.get("bookingReference", "")
    customer_name = escape_html(merge_data.get("customerName"))
    location_name = escape_html(merge_data.get("locationName"))
    details = _detail_rows(
        [
            ("Reference", reference),
            ("Date", merge_data.get("bookingDate")),
            ("Time", merge_data.get("bookingTime")),
            ("Location", merge_data.get("locationName")),
            ("Address", merge_data.get("locationAddress")),
            ("Phone", merge_data.get("locationPhone")),
        ]
    )
    content = f"""      <p>Hi {customer_name},</p>
      <p>Thank you for booking a free assessment with <strong>{location_name}</strong>. We look forward to meeting you.</p>
      <div class="detail-card">
        {details}
      </div>
      <p>If you need to change your booking, simply reply to this email.</p>"""

    html = _legacy_shell(
        "Your Assessment is Booked!", f"Booking reference {escape_html(reference)}", content,
        THEME["primary"], "#ffffff",
    )
    text = (
        f"Hi {merge_data.get('customerName', '')}, your assessment at "
        f"{merge_data.get('locationName', '')} is booked for {merge_data.get('bookingDate', '')} "
        f"at {merge_data.get('bookingTime', '')}. Reference: {reference}"
    )
    return LegacyEmail(f"Assessment Confirmed — {merge_data.get('locationName', '')}", html, text)


def legacy_booking_partner(merge_data: dict) -> LegacyEmail:
    """Fixed new-booking notification for the franchise partner"""
    location_name = escape_html(merge_data.get("locationName"))
    details = _detail_rows(
        [
            ("Reference", merge_data.get("bookingReference")),
            ("Customer", merge_data.get("customerName")),
            ("Email", merge_data.get("customerEmail")),
            ("Phone", merge_data.get("customerPhone")),
            ("Child", merge_data.get("childName")),
            ("Grade", merge_data.get("childGrade")),
            ("Date", merge_data.get("bookingDate")),
            ("Time", merge_data.get("bookingTime")),
            ("Notes", merge_data.get("notes")),
        ]
    )
    content = f"""      <p>A new assessment has been booked at <strong>{location_name}</strong>.</p>
      <div class="detail-card">
        {details}
      </div>
      <div class="cta"><a href="{PORTAL_URL}">Open Partner Portal &rarr;</a></div>"""

    html = _legacy_shell(
        "New Assessment Booking", escape_html(merge_data.get("locationName")), content,
        THEME["primary"], "#ffffff",
    )
    text = (
        f"New booking from {merge_data.get('customerName', '')} on "
        f"{merge_data.get('bookingDate', '')} at {merge_data.get('bookingTime', '')}."
    )
    return LegacyEmail(f"New Booking: {merge_data.get('customerName', '')}", html, text)


# ============================================
# Built-in templates written by seedDefaultTemplates
# ============================================

_DETAILS_BOOKING = """<div class="detail-card">
  <p><span class="detail-label">Reference:</span> {{bookingReference}}</p>
  <p><span class="detail-label">Date:</span> {{bookingDate}}</p>
  <p><span class="detail-label">Time:</span> {{bookingTime}}</p>
  <p><span class="detail-label">Location:</span> {{locationName}}, {{locationAddress}}</p>
</div>"""

_DETAILS_ENQUIRY = """<div class="detail-card">
  <p><span class="detail-label">Form:</span> {{formType}}</p>
  <p><span class="detail-label">Name:</span> {{customerName}}</p>
  <p><span class="detail-label">Email:</span> {{customerEmail}}</p>
  <p><span class="detail-label">Phone:</span> {{customerPhone}}</p>
  <p><span class="detail-label">Message:</span> {{enquiryMessage}}</p>
</div>"""


def _enquiry_templates(slug: str, label: str, customer_copy: Optional[str]) -> list[dict]:
    templates = [
        {
            "key": f"partner_{slug}_enquiry",
            "category": "enquiries",
            "subject": "New {{formType}} enquiry from {{customerName}}",
            "headerTitle": f"New {label}",
            "headerSubtitle": "{{locationName}}",
            "body": "<p>A new enquiry has been submitted for {{locationName}}.</p>" + _DETAILS_ENQUIRY,
            "mergeTags": ["formType", "customerName", "customerEmail", "customerPhone",
                          "enquiryMessage", "locationName"],
        }
    ]
    if customer_copy:
        templates.append(
            {
                "key": f"customer_{slug}_confirmation",
                "category": "enquiries",
                "subject": f"{label} — {{{{locationName}}}}",
                "headerTitle": "Thanks for reaching out!",
                "headerSubtitle": "{{locationName}}",
                "body": f"<p>Hi {{{{customerName}}}},</p><p>{customer_copy}</p>",
                "mergeTags": ["customerName", "locationName"],
            }
        )
    return templates


DEFAULT_TEMPLATES: list[dict] = [
    {
        "key": "location_welcome",
        "category": "locations",
        "subject": 'Welcome! Your franchise location "{{locationName}}" is now active',
        "headerTitle": "Welcome to the Network!",
        "headerSubtitle": "Your franchise location has been created",
        "body": (
            "<p>Hi there,</p>"
            "<p>Your franchise location <strong>{{locationName}}</strong> is now active.</p>"
            '<div class="detail-card"><p>{{locationAddress}}</p><p>{{locationPhone}}</p>'
            "<p>{{locationEmail}}</p></div>"
            '<div class="cta"><a href="{{portalUrl}}">Access Partner Portal</a></div>'
        ),
        "mergeTags": ["locationName", "locationAddress", "locationPhone", "locationEmail", "portalUrl"],
    },
    {
        "key": "admin_invite",
        "category": "users",
        "subject": f"You've been invited to the {BRAND_NAME} HQ Portal",
        "headerTitle": "You've been invited!",
        "headerSubtitle": f"{BRAND_NAME} HQ Portal",
        "headerBg": THEME["ink"],
        "body": (
            "<p>Hi {{inviteeName}},</p>"
            "<p>You've been invited to join the HQ Portal as <strong>{{role}}</strong>.</p>"
            '<div class="cta"><a href="{{inviteUrl}}">Accept Invite &amp; Sign In</a></div>'
        ),
        "mergeTags": ["inviteeName", "role", "inviteUrl"],
    },
    {
        "key": "customer_assessment_booked",
        "category": "bookings",
        "subject": "Your assessment at {{locationName}} is booked",
        "headerTitle": "Your Assessment is Booked!",
        "headerSubtitle": "Reference {{bookingReference}}",
        "body": (
            "<p>Hi {{customerName}},</p>"
            "<p>Thanks for booking a free assessment for {{childName}}.</p>" + _DETAILS_BOOKING
        ),
        "mergeTags": ["customerName", "childName", "bookingReference", "bookingDate",
                      "bookingTime", "locationName", "locationAddress"],
    },
    {
        "key": "partner_assessment_booked",
        "category": "bookings",
        "subject": "New assessment booking: {{customerName}}",
        "headerTitle": "New Assessment Booking",
        "headerSubtitle": "{{locationName}}",
        "body": (
            "<p>{{customerName}} ({{customerEmail}}, {{customerPhone}}) booked an assessment "
            "for {{childName}} ({{childGrade}}).</p>" + _DETAILS_BOOKING + "<p>Notes: {{notes}}</p>"
        ),
        "mergeTags": ["customerName", "customerEmail", "customerPhone", "childName", "childGrade",
                      "bookingReference", "bookingDate", "bookingTime", "notes"],
    },
    {
        "key": "partner_new_lead",
        "category": "bookings",
        "subject": "New lead: {{customerName}}",
        "headerTitle": "New Lead",
        "headerSubtitle": "{{locationName}}",
        "body": (
            "<p>A new lead has been added to your pipeline.</p>"
            '<div class="detail-card"><p>{{customerName}}</p><p>{{customerEmail}}</p>'
            "<p>{{customerPhone}}</p></div>"
        ),
        "mergeTags": ["customerName", "customerEmail", "customerPhone", "locationName"],
    },
    *_enquiry_templates("general", "General Enquiry", None),
    *_enquiry_templates(
        "vip_list", "VIP List", "You're on the VIP list. We'll be in touch with priority updates."
    ),
    *_enquiry_templates(
        "coming_soon",
        "Coming Soon Registration",
        "Thanks for registering your interest. We'll let you know as soon as we open.",
    ),
    *_enquiry_templates(
        "temporary_closed",
        "Temporarily Closed Enquiry",
        "Our centre is temporarily closed. We'll contact you when we reopen.",
    ),
    {
        "key": "session_rescheduled",
        "category": "sessions",
        "subject": "{{childName}}'s session has been rescheduled",
        "headerTitle": "Session Rescheduled",
        "headerSubtitle": "{{locationName}}",
        "body": (
            "<p>Hi {{parentName}},</p>"
            "<p>{{childName}}'s session on {{previousDate}} at {{previousTime}} has moved to "
            "<strong>{{sessionDate}} at {{sessionTime}}</strong>.</p>"
        ),
        "mergeTags": ["parentName", "childName", "previousDate", "previousTime",
                      "sessionDate", "sessionTime", "locationName"],
    },
    {
        "key": "session_cancelled",
        "category": "sessions",
        "subject": "{{childName}}'s session on {{sessionDate}} has been cancelled",
        "headerTitle": "Session Cancelled",
        "headerSubtitle": "{{locationName}}",
        "headerBg": "#8a2d2d",
        "body": (
            "<p>Hi {{parentName}},</p>"
            "<p>{{childName}}'s session on {{sessionDate}} at {{sessionTime}} has been cancelled.</p>"
            "<p>{{reason}}</p>"
        ),
        "mergeTags": ["parentName", "childName", "sessionDate", "sessionTime", "reason", "locationName"],
    },
]


# Sample values used by sendTestEmail
SAMPLE_MERGE_DATA = {
    "customerName": "Jane Citizen",
    "customerEmail": "jane@example.com",
    "customerPhone": "0400 000 000",
    "parentName": "Jane Citizen",
    "parentEmail": "jane@example.com",
    "childName": "Sam",
    "childGrade": "Year 5",
    "locationName": "North Sydney",
    "locationAddress": "100 Miller St, North Sydney NSW 2060",
    "locationPhone": "02 9000 0000",
    "locationEmail": "northsydney@example.com",
    "bookingDate": "Sunday, 15 March 2026",
    "bookingTime": "10:00 AM",
    "bookingReference": "ABCDEFGH",
    "notes": "Prefers mornings",
    "portalUrl": PORTAL_URL,
    "inviteUrl": f"{PORTAL_URL}?invite=sample",
    "inviteeName": "Alex Admin",
    "role": "admin",
    "formType": "General Enquiry",
    "enquiryMessage": "Do you offer maths tutoring?",
    "sessionDate": "Monday, 16 March 2026",
    "sessionTime": "4:00 PM",
    "previousDate": "Sunday, 15 March 2026",
    "previousTime": "10:00 AM",
    "reason": "The centre is closed for a public holiday.",
    "amount": "49.00",
    "weeklyAmount": "49.00",
    "joiningFee": "99.00",
    "refundAmount": "49.00",
}
