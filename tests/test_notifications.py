import pytest
import resend

from franchise_portal.domain.email.repository import TemplateRepository
from franchise_portal.domain.notifications import service
from franchise_portal.email_templates import DEFAULT_TEMPLATES
from franchise_portal.errors import CallableError
from franchise_portal.firestore import BOOKINGS, ENQUIRIES, INVITES, LOCATIONS, PARENTS, SESSIONS, TEMPLATES


@pytest.fixture
def seeded_db(db):
    TemplateRepository.seed_templates(db, DEFAULT_TEMPLATES)
    return db


def _recipients(sent_emails):
    return [message["to"][0] for message in sent_emails]


# ============================================================================
# LOCATIONS
# ============================================================================


async def test_location_created_falls_back_to_legacy_email(db, sent_emails):
    location = {"name": "North Sydney", "email": "ns@example.com", "countryCode": "AU"}
    db.seed(LOCATIONS, "loc1", location)

    result = await service.on_location_created(db, "loc1", location)

    assert result == {"sent": True}
    assert len(sent_emails) == 1
    assert "North Sydney" in sent_emails[0]["subject"]
    assert db.doc(LOCATIONS, "loc1")["confirmationEmailSentAt"]


async def test_location_created_uses_stored_template(seeded_db, sent_emails):
    location = {"name": "Parramatta", "email": "parra@example.com"}
    seeded_db.seed(LOCATIONS, "loc2", location)

    await service.on_location_created(seeded_db, "loc2", location)

    assert sent_emails[0]["subject"] == 'Welcome! Your franchise location "Parramatta" is now active'


async def test_location_created_without_email_is_skipped(db, sent_emails):
    db.seed(LOCATIONS, "loc3", {"name": "No Email"})
    result = await service.on_location_created(db, "loc3", {"name": "No Email"})
    assert result["sent"] is False
    assert sent_emails == []
    assert "confirmationEmailSentAt" not in db.doc(LOCATIONS, "loc3")


async def test_location_created_nothing_sent_leaves_no_stamp(db, failing_transport):
    location = {"name": "Broken", "email": "b@example.com"}
    db.seed(LOCATIONS, "loc4", location)
    result = await service.on_location_created(db, "loc4", location)
    assert result == {"sent": False}
    assert "confirmationEmailSentAt" not in db.doc(LOCATIONS, "loc4")


# ============================================================================
# INVITES
# ============================================================================


async def test_invite_created_sends_invite_link(seeded_db, sent_emails):
    invite = {"email": "new.admin@example.com", "name": "Alex", "role": "admin"}
    seeded_db.seed(INVITES, "inv1", invite)

    result = await service.on_invite_created(seeded_db, "inv1", invite)

    assert result == {"sent": True}
    assert "?invite=inv1" in sent_emails[0]["html"]
    assert seeded_db.doc(INVITES, "inv1")["inviteEmailSentAt"]


async def test_invite_created_legacy_fallback(db, sent_emails):
    invite = {"email": "new.admin@example.com", "name": "Alex"}
    db.seed(INVITES, "inv2", invite)
    await service.on_invite_created(db, "inv2", invite)
    assert sent_emails[0]["subject"] == "You've been invited to the Success Tutoring HQ Portal"


# ============================================================================
# BOOKINGS
# ============================================================================


async def test_booking_created_dedups_customer_recipients(seeded_db, sent_emails):
    seeded_db.seed(LOCATIONS, "loc1", {"name": "North Sydney", "email": "partner@example.com"})
    booking = {
        "locationId": "loc1",
        "customerName": "Jane",
        "customerEmail": "A@x.com",
        "parentEmail": " a@x.com ",
        "date": "2026-03-15",
        "time": "14:45",
    }
    seeded_db.seed(BOOKINGS, "abcdefgh-1234", booking)

    result = await service.on_booking_created(seeded_db, "abcdefgh-1234", booking)

    assert result["recipients"] == ["a@x.com"]
    assert result["sentCount"] == 1
    assert result["success"] is True
    assert result["bookingReference"] == "ABCDEFGH"
    assert _recipients(sent_emails).count("a@x.com") == 1
    assert _recipients(sent_emails).count("partner@example.com") == 2

    stored = seeded_db.doc(BOOKINGS, "abcdefgh-1234")
    assert stored["confirmationEmailSentAt"]
    assert stored["partnerNotificationSentAt"]


async def test_booking_merge_data_formats_date_and_time(seeded_db, sent_emails):
    seeded_db.seed(LOCATIONS, "loc1", {"name": "North Sydney"})
    booking = {
        "locationId": "loc1",
        "customerEmail": "jane@example.com",
        "date": "2026-03-15",
        "time": "14:45",
    }
    seeded_db.seed(BOOKINGS, "bk1", booking)

    await service.on_booking_created(seeded_db, "bk1", booking)

    html = sent_emails[0]["html"]
    assert "Sunday, 15 March 2026" in html
    assert "2:45 PM" in html


async def test_booking_created_legacy_fallbacks_without_templates(db, sent_emails):
    db.seed(LOCATIONS, "loc1", {"name": "North Sydney", "email": "partner@example.com"})
    booking = {"locationId": "loc1", "customerName": "Jane", "customerEmail": "jane@example.com"}
    db.seed(BOOKINGS, "bk2", booking)

    result = await service.on_booking_created(db, "bk2", booking)

    # partner_new_lead has no fixed fallback
    assert result["partnerConfirmationSent"] is True
    assert result["partnerNewLeadSent"] is False
    assert [m["subject"] for m in sent_emails] == [
        "Assessment Confirmed — North Sydney",
        "New Booking: Jane",
    ]


async def test_booking_without_any_email_reports_failure(db, sent_emails):
    booking = {"customerName": "Nobody"}
    db.seed(BOOKINGS, "bk3", booking)
    result = await service.on_booking_created(db, "bk3", booking)
    assert result["success"] is False
    assert result["sentCount"] == 0
    assert "confirmationEmailSentAt" not in db.doc(BOOKINGS, "bk3")


# ============================================================================
# ENQUIRIES
# ============================================================================


async def test_enquiry_vip_list_notifies_partner_and_customer(seeded_db, sent_emails):
    seeded_db.seed(LOCATIONS, "loc1", {"name": "North Sydney", "email": "partner@example.com"})
    enquiry = {"type": "vip_list", "locationId": "loc1", "name": "Jane", "email": "Jane@Example.com"}
    seeded_db.seed(ENQUIRIES, "enq1", enquiry)

    result = await service.on_enquiry_created(seeded_db, "enq1", enquiry)

    assert result == {"formType": "VIP List", "partnerSent": True, "customerSent": True}
    assert _recipients(sent_emails) == ["partner@example.com", "jane@example.com"]
    assert sent_emails[0]["subject"] == "New VIP List enquiry from Jane"
    assert seeded_db.doc(ENQUIRIES, "enq1")["notificationSentAt"]


async def test_enquiry_unknown_type_is_general(seeded_db, sent_emails):
    seeded_db.seed(LOCATIONS, "loc1", {"name": "North Sydney", "email": "partner@example.com"})
    enquiry = {"type": "something_else", "locationId": "loc1", "name": "Jane", "email": "jane@example.com"}
    seeded_db.seed(ENQUIRIES, "enq2", enquiry)

    result = await service.on_enquiry_created(seeded_db, "enq2", enquiry)

    assert result["formType"] == "General Enquiry"
    assert result["customerSent"] is False
    assert _recipients(sent_emails) == ["partner@example.com"]


def test_enquiry_routes():
    assert service.enquiry_route("coming_soon").partner_template == "partner_coming_soon_enquiry"
    assert service.enquiry_route("temporary_closed").customer_template == "customer_temporary_closed_confirmation"
    assert service.enquiry_route(None) is service.GENERIC_ENQUIRY


# ============================================================================
# SESSIONS
# ============================================================================


async def test_session_cancelled_notifies_parent(seeded_db, sent_emails):
    before = {"status": "scheduled", "date": "2026-03-16", "time": "16:00", "parentEmail": "p@example.com"}
    after = {**before, "status": "cancelled", "childName": "Sam", "cancelReason": "Public holiday"}
    seeded_db.seed(SESSIONS, "s1", after)

    result = await service.on_session_updated(seeded_db, "s1", before, after)

    assert result == {"sent": True, "change": "cancelled"}
    assert sent_emails[0]["subject"] == "Sam's session on Monday, 16 March 2026 has been cancelled"
    assert seeded_db.doc(SESSIONS, "s1")["cancellationNotificationSentAt"]


async def test_session_rescheduled_uses_parent_record(seeded_db, sent_emails):
    seeded_db.seed(PARENTS, "par1", {"email": "parent@example.com", "name": "Pat"})
    before = {"status": "scheduled", "date": "2026-03-16", "time": "16:00", "parentId": "par1"}
    after = {**before, "date": "2026-03-17", "childName": "Sam"}
    seeded_db.seed(SESSIONS, "s2", after)

    result = await service.on_session_updated(seeded_db, "s2", before, after)

    assert result["change"] == "rescheduled"
    assert sent_emails[0]["to"] == ["parent@example.com"]
    assert "Monday, 16 March 2026" in sent_emails[0]["html"]
    assert seeded_db.doc(SESSIONS, "s2")["rescheduleNotificationSentAt"]


async def test_session_update_without_change_sends_nothing(seeded_db, sent_emails):
    session = {"status": "scheduled", "date": "2026-03-16", "time": "16:00", "parentEmail": "p@example.com"}
    result = await service.on_session_updated(seeded_db, "s3", session, dict(session))
    assert result["sent"] is False
    assert sent_emails == []


# ============================================================================
# RESENDS
# ============================================================================


async def test_resend_confirmation_sends_reminder(db, sent_emails):
    db.seed(LOCATIONS, "loc1", {"name": "North Sydney", "email": "ns@example.com"})
    assert await service.resend_confirmation_email(db, "loc1") == {"success": True}
    assert sent_emails[0]["subject"] == "Reminder: Access your partner portal — North Sydney"
    assert db.doc(LOCATIONS, "loc1")["confirmationEmailSentAt"]


async def test_resend_confirmation_errors(db, failing_transport):
    with pytest.raises(CallableError) as missing_arg:
        await service.resend_confirmation_email(db, None)
    assert missing_arg.value.code == "invalid-argument"

    with pytest.raises(CallableError) as not_found:
        await service.resend_confirmation_email(db, "nope")
    assert not_found.value.code == "not-found"

    db.seed(LOCATIONS, "noemail", {"name": "X"})
    with pytest.raises(CallableError) as no_email:
        await service.resend_confirmation_email(db, "noemail")
    assert no_email.value.code == "failed-precondition"

    db.seed(LOCATIONS, "loc1", {"name": "X", "email": "x@example.com"})
    with pytest.raises(CallableError) as failed:
        await service.resend_confirmation_email(db, "loc1")
    assert failed.value.code == "internal"


async def test_resend_invite_stamps_last_resent(db, sent_emails):
    db.seed(INVITES, "inv1", {"email": "a@example.com"})
    assert await service.resend_invite_email(db, "inv1") == {"success": True}
    assert db.doc(INVITES, "inv1")["lastResentAt"]


def test_templates_collection_name():
    assert TEMPLATES == "emailTemplates"


# ============================================================================
# FAILURE ISOLATION
# ============================================================================


async def test_template_store_outage_still_sends_legacy_welcome(db, sent_emails, monkeypatch):
    location = {"name": "North Sydney", "email": "ns@example.com"}
    db.seed(LOCATIONS, "loc1", location)
    real_collection = db.collection

    def collection(name):
        if name == TEMPLATES:
            raise RuntimeError("template store unavailable")
        return real_collection(name)

    monkeypatch.setattr(db, "collection", collection)

    result = await service.on_location_created(db, "loc1", location)

    assert result == {"sent": True}
    assert sent_emails[0]["subject"] == 'Welcome! Your franchise location "North Sydney" is now active'
    assert db.doc(LOCATIONS, "loc1")["confirmationEmailSentAt"]


async def test_partner_confirmation_failure_does_not_block_new_lead(seeded_db, monkeypatch):
    seeded_db.seed(LOCATIONS, "loc1", {"name": "North Sydney", "email": "partner@example.com"})
    booking = {"locationId": "loc1", "customerName": "Jane", "customerEmail": "jane@example.com"}
    seeded_db.seed(BOOKINGS, "bk9", booking)
    attempted = []

    def fake_send(params):
        attempted.append(params["subject"])
        # Both the templated and the fixed partner confirmation are rejected
        if params["subject"].startswith(("New assessment booking", "New Booking:")):
            raise RuntimeError("mailbox rejected")
        return {"id": "ok"}

    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(resend.Emails, "send", fake_send)

    result = await service.on_booking_created(seeded_db, "bk9", booking)

    assert result["partnerConfirmationSent"] is False
    assert result["partnerNewLeadSent"] is True
    assert "New lead: Jane" in attempted
    assert seeded_db.doc(BOOKINGS, "bk9")["partnerNotificationSentAt"]
