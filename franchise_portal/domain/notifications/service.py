"""
Notification Triggers

Entry points invoked when domain documents are created or updated. Each one
assembles merge data from the triggering record (plus related records), hands
it to the templated email pipeline and, for the flows that must not depend on
the template store, falls back to a fixed legacy email.

Event triggers never raise: a failed send is logged and reported in the
returned summary only.
"""

import logging
from typing import NamedTuple, Optional

from ...config import PORTAL_URL
from ...errors import CallableError
from ...email_service import send_legacy_email, send_templated_email
from ...email_templates import (
    legacy_admin_invite,
    legacy_booking_customer,
    legacy_booking_partner,
    legacy_location_welcome,
)
from ...firestore import BOOKINGS, ENQUIRIES, INVITES, LOCATIONS, PARENTS, SESSIONS
from ...shared.validators import normalize_email, unique_recipients
from ...utils.formatters import booking_reference, fmt_time, format_long_date
from .repository import RecordRepository

logger = logging.getLogger(__name__)


class EnquiryRoute(NamedTuple):
    form_type: str
    partner_template: str
    customer_template: Optional[str]


ENQUIRY_ROUTES = {
    "vip_list": EnquiryRoute(
        "VIP List", "partner_vip_list_enquiry", "customer_vip_list_confirmation"
    ),
    "coming_soon": EnquiryRoute(
        "Coming Soon Registration", "partner_coming_soon_enquiry", "customer_coming_soon_confirmation"
    ),
    "temporary_closed": EnquiryRoute(
        "Temporarily Closed Enquiry",
        "partner_temporary_closed_enquiry",
        "customer_temporary_closed_confirmation",
    ),
}
GENERIC_ENQUIRY = EnquiryRoute("General Enquiry", "partner_general_enquiry", None)


def enquiry_route(enquiry_type: Optional[str]) -> EnquiryRoute:
    return ENQUIRY_ROUTES.get(enquiry_type or "", GENERIC_ENQUIRY)


def location_country(location: Optional[dict]) -> Optional[str]:
    if not location:
        return None
    return location.get("countryCode") or location.get("country")


def _load_location(db, location_id: Optional[str]) -> Optional[dict]:
    try:
        return RecordRepository.get_record(db, LOCATIONS, location_id)
    except Exception as e:
        logger.error(f"❌ Failed to load location {location_id}: {e}")
        return None


def location_merge_data(location: dict) -> dict:
    return {
        "locationName": location.get("name"),
        "locationAddress": location.get("address"),
        "locationPhone": location.get("phone"),
        "locationEmail": location.get("email"),
        "portalUrl": PORTAL_URL,
    }


def build_booking_merge_data(booking_id: str, booking: dict, location: Optional[dict]) -> dict:
    """Merge data for the booking-created emails"""
    location = location or {}
    return {
        "customerName": booking.get("customerName"),
        "customerEmail": booking.get("customerEmail"),
        "customerPhone": booking.get("customerPhone"),
        "parentName": booking.get("parentName") or booking.get("customerName"),
        "parentEmail": booking.get("parentEmail"),
        "childName": booking.get("childName"),
        "childGrade": booking.get("childGrade"),
        "locationName": booking.get("locationName") or location.get("name"),
        "locationAddress": booking.get("locationAddress") or location.get("address"),
        "locationPhone": location.get("phone"),
        "locationEmail": location.get("email"),
        "bookingDate": format_long_date(booking.get("date")),
        "bookingTime": fmt_time(booking.get("time")),
        "bookingReference": booking_reference(booking_id),
        "notes": booking.get("notes"),
        "portalUrl": PORTAL_URL,
    }


async def send_location_welcome(db, location_id: str, location: dict, reminder: bool = False) -> bool:
    """Welcome email for a location: stored template first, then the fixed legacy email"""
    to = location.get("email")
    merge_data = location_merge_data(location)

    sent = await send_templated_email(
        db, to, "location_welcome", merge_data, country=location_country(location)
    )
    if not sent:
        logger.info(f"Falling back to legacy welcome email for location {location_id}")
        sent = await send_legacy_email(to, legacy_location_welcome(location, reminder=reminder))
    return sent


async def on_location_created(db, location_id: str, location: dict) -> dict:
    """Send the welcome email when a new location document is created"""
    if not location or not location.get("email"):
        logger.warning(f"⚠️ Location {location_id} has no email - skipping.")
        return {"sent": False, "reason": "missing_email"}

    sent = await send_location_welcome(db, location_id, location)
    if sent:
        RecordRepository.stamp(db, LOCATIONS, location_id, "confirmationEmailSentAt")
    return {"sent": sent}


def invite_url(invite_id: str) -> str:
    return f"{PORTAL_URL}?invite={invite_id}"


async def send_invite(db, invite_id: str, invite: dict) -> bool:
    url = invite_url(invite_id)
    merge_data = {
        "inviteeName": invite.get("name"),
        "role": invite.get("role") or "admin",
        "inviteUrl": url,
        "portalUrl": PORTAL_URL,
    }
    sent = await send_templated_email(
        db, invite["email"], "admin_invite", merge_data, country=invite.get("country")
    )
    if not sent:
        logger.info(f"Falling back to legacy invite email for invite {invite_id}")
        sent = await send_legacy_email(invite["email"], legacy_admin_invite(invite, url))
    return sent


async def on_invite_created(db, invite_id: str, invite: dict) -> dict:
    """Send the portal invitation when an invite document is created"""
    if not invite or not invite.get("email"):
        logger.warning(f"⚠️ Invite {invite_id} has no email - skipping.")
        return {"sent": False, "reason": "missing_email"}

    sent = await send_invite(db, invite_id, invite)
    if sent:
        RecordRepository.stamp(db, INVITES, invite_id, "inviteEmailSentAt")
    return {"sent": sent}


async def on_booking_created(db, booking_id: str, booking: dict) -> dict:
    """
    Confirm a new assessment booking.

    Sends the customer confirmation to every distinct customer/parent address
    and, when the location has an email, the partner booking confirmation and
    the partner new-lead email. Each send is independent of the others.
    """
    location = _load_location(db, booking.get("locationId"))
    merge_data = build_booking_merge_data(booking_id, booking, location)
    country = location_country(location) or booking.get("country")
    location_email = (location or {}).get("email")

    recipients = unique_recipients(booking.get("customerEmail"), booking.get("parentEmail"))
    if not recipients:
        logger.warning(f"⚠️ Booking {booking_id} has no customer email - skipping customer confirmation.")

    sent_count = 0
    for recipient in recipients:
        sent = await send_templated_email(
            db,
            recipient,
            "customer_assessment_booked",
            merge_data,
            country=country,
            reply_to=location_email,
        )
        if not sent:
            logger.info(f"Falling back to legacy customer confirmation for booking {booking_id}")
            sent = await send_legacy_email(
                recipient, legacy_booking_customer(merge_data), reply_to=location_email
            )
        if sent:
            sent_count += 1

    partner_confirmation = False
    partner_new_lead = False
    if location_email:
        partner_confirmation = await send_templated_email(
            db,
            location_email,
            "partner_assessment_booked",
            merge_data,
            country=country,
            reply_to=booking.get("customerEmail"),
        )
        if not partner_confirmation:
            logger.info(f"Falling back to legacy partner notification for booking {booking_id}")
            partner_confirmation = await send_legacy_email(
                location_email, legacy_booking_partner(merge_data), reply_to=booking.get("customerEmail")
            )

        partner_new_lead = await send_templated_email(
            db,
            location_email,
            "partner_new_lead",
            merge_data,
            country=country,
            reply_to=booking.get("customerEmail"),
        )
    else:
        logger.warning(f"⚠️ No partner email for booking {booking_id} (location {booking.get('locationId')})")

    if sent_count > 0:
        RecordRepository.stamp(db, BOOKINGS, booking_id, "confirmationEmailSentAt")
    if partner_confirmation or partner_new_lead:
        RecordRepository.stamp(db, BOOKINGS, booking_id, "partnerNotificationSentAt")

    logger.info(
        f"Booking {booking_id} notifications: customer {sent_count}/{len(recipients)}, "
        f"partner confirmation={partner_confirmation}, new lead={partner_new_lead}"
    )
    return {
        "success": sent_count > 0,
        "sentCount": sent_count,
        "recipients": recipients,
        "bookingReference": merge_data["bookingReference"],
        "partnerConfirmationSent": partner_confirmation,
        "partnerNewLeadSent": partner_new_lead,
    }


async def on_enquiry_created(db, enquiry_id: str, enquiry: dict) -> dict:
    """Notify the franchise partner (and the customer, where a template exists) of an enquiry"""
    route = enquiry_route(enquiry.get("type"))
    location = _load_location(db, enquiry.get("locationId")) or {}
    country = location_country(location) or enquiry.get("country")

    merge_data = {
        **location_merge_data(location),
        "customerName": enquiry.get("name") or enquiry.get("customerName"),
        "customerEmail": enquiry.get("email") or enquiry.get("customerEmail"),
        "customerPhone": enquiry.get("phone") or enquiry.get("customerPhone"),
        "childName": enquiry.get("childName"),
        "childGrade": enquiry.get("childGrade"),
        "enquiryMessage": enquiry.get("message"),
        "formType": route.form_type,
    }
    if not merge_data["locationName"]:
        merge_data["locationName"] = enquiry.get("locationName")

    partner_sent = False
    partner_email = location.get("email")
    if partner_email:
        partner_sent = await send_templated_email(
            db,
            partner_email,
            route.partner_template,
            merge_data,
            country=country,
            reply_to=merge_data["customerEmail"],
        )
    else:
        logger.warning(f"⚠️ Enquiry {enquiry_id} has no partner email - skipping partner notification.")

    customer_sent = False
    customer_email = normalize_email(merge_data["customerEmail"])
    if route.customer_template and customer_email:
        customer_sent = await send_templated_email(
            db,
            customer_email,
            route.customer_template,
            merge_data,
            country=country,
            reply_to=partner_email,
        )

    if partner_sent or customer_sent:
        RecordRepository.stamp(db, ENQUIRIES, enquiry_id, "notificationSentAt")

    return {
        "formType": route.form_type,
        "partnerSent": partner_sent,
        "customerSent": customer_sent,
    }


def _session_change(before: dict, after: dict) -> Optional[str]:
    if after.get("status") == "cancelled" and before.get("status") != "cancelled":
        return "cancelled"
    if after.get("status") == "cancelled":
        return None
    if before.get("date") != after.get("date") or before.get("time") != after.get("time"):
        return "rescheduled"
    return None


async def on_session_updated(db, session_id: str, before: dict, after: dict) -> dict:
    """Tell the parent when a scheduled session is rescheduled or cancelled"""
    before = before or {}
    after = after or {}
    change = _session_change(before, after)
    if not change:
        return {"sent": False, "reason": "no_change"}

    parent = None
    recipient = normalize_email(after.get("parentEmail"))
    if not recipient and after.get("parentId"):
        try:
            parent = RecordRepository.get_record(db, PARENTS, after["parentId"])
        except Exception as e:
            logger.error(f"❌ Failed to load parent {after['parentId']}: {e}")
        recipient = normalize_email((parent or {}).get("email"))
    if not recipient:
        logger.warning(f"⚠️ Session {session_id} has no parent email - skipping {change} notice.")
        return {"sent": False, "reason": "missing_email"}

    location = _load_location(db, after.get("locationId")) or {}
    merge_data = {
        **location_merge_data(location),
        "parentName": after.get("parentName") or (parent or {}).get("name"),
        "parentEmail": recipient,
        "childName": after.get("childName"),
        "sessionDate": format_long_date(after.get("date")),
        "sessionTime": fmt_time(after.get("time")),
        "previousDate": format_long_date(after.get("previousDate") or before.get("date")),
        "previousTime": fmt_time(after.get("previousTime") or before.get("time")),
        "reason": after.get("cancelReason"),
    }

    if change == "cancelled":
        template_key, field = "session_cancelled", "cancellationNotificationSentAt"
    else:
        template_key, field = "session_rescheduled", "rescheduleNotificationSentAt"

    sent = await send_templated_email(
        db,
        recipient,
        template_key,
        merge_data,
        country=location_country(location),
        reply_to=location.get("email"),
    )
    if sent:
        RecordRepository.stamp(db, SESSIONS, session_id, field)
    return {"sent": sent, "change": change}


# ============================================
# Operator-invoked resends
# ============================================


async def resend_confirmation_email(db, location_id: Optional[str]) -> dict:
    """Resend the welcome email for a location"""
    if not location_id:
        raise CallableError("invalid-argument", "locationId is required.")

    location = RecordRepository.get_record(db, LOCATIONS, location_id)
    if location is None:
        raise CallableError("not-found", f"Location {location_id} not found.")
    if not location.get("email"):
        raise CallableError("failed-precondition", f"Location {location_id} has no email address.")

    sent = await send_location_welcome(db, location_id, location, reminder=True)
    if not sent:
        raise CallableError("internal", "Failed to send the confirmation email.")

    RecordRepository.stamp(db, LOCATIONS, location_id, "confirmationEmailSentAt")
    return {"success": True}


async def resend_invite_email(db, invite_id: Optional[str]) -> dict:
    """Resend a portal invitation and record when it was resent"""
    if not invite_id:
        raise CallableError("invalid-argument", "inviteId is required.")

    invite = RecordRepository.get_record(db, INVITES, invite_id)
    if invite is None:
        raise CallableError("not-found", f"Invite {invite_id} not found.")
    if not invite.get("email"):
        raise CallableError("failed-precondition", f"Invite {invite_id} has no email address.")

    sent = await send_invite(db, invite_id, invite)
    if not sent:
        raise CallableError("internal", "Failed to send the invite email.")

    RecordRepository.stamp(db, INVITES, invite_id, "lastResentAt")
    return {"success": True}
