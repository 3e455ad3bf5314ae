import pytest

from franchise_portal.domain.email.service import EmailTemplateService
from franchise_portal.email_templates import DEFAULT_TEMPLATES
from franchise_portal.errors import CallableError
from franchise_portal.firestore import TEMPLATES


def test_seed_creates_every_default_template(db):
    result = EmailTemplateService(db).seed_default_templates({})

    assert result == {"success": True, "created": len(DEFAULT_TEMPLATES), "updated": 0, "skipped": 0}
    stored = db.doc(TEMPLATES, "customer_assessment_booked")
    assert stored["scope"] == "global"
    assert stored["enabled"] is True
    assert stored["createdAt"]


def test_seed_skips_existing_unless_overwrite(db):
    db.seed(TEMPLATES, "location_welcome", {"subject": "Custom subject", "body": "<p>custom</p>"})
    service = EmailTemplateService(db)

    first = service.seed_default_templates({"overwrite": False})
    assert first["skipped"] == 1
    assert db.doc(TEMPLATES, "location_welcome")["subject"] == "Custom subject"

    second = service.seed_default_templates({"overwrite": True})
    assert second["updated"] == len(DEFAULT_TEMPLATES)
    assert db.doc(TEMPLATES, "location_welcome")["subject"] != "Custom subject"


async def test_send_test_email_uses_sample_data(db, sent_emails):
    db.seed(TEMPLATES, "partner_new_lead", {
        "subject": "Lead {{customerName}} {{year}}",
        "body": "<p>{{locationName}}</p>",
    })

    result = await EmailTemplateService(db).send_test_email({
        "templateKey": "partner_new_lead",
        "to": "Operator@Example.com",
        "mergeData": {"year": 2030},
    })

    assert result == {"success": True}
    assert sent_emails[0]["to"] == ["operator@example.com"]
    assert sent_emails[0]["subject"] == "Lead Jane Citizen 2030"
    assert "<p>North Sydney</p>" in sent_emails[0]["html"]


async def test_send_test_email_unknown_template(db, sent_emails):
    with pytest.raises(CallableError) as exc:
        await EmailTemplateService(db).send_test_email({"templateKey": "nope", "to": "a@example.com"})
    assert exc.value.code == "not-found"


async def test_send_test_email_invalid_recipient(db, sent_emails):
    with pytest.raises(CallableError) as exc:
        await EmailTemplateService(db).send_test_email({"templateKey": "x", "to": "not-an-email"})
    assert exc.value.code == "invalid-argument"


async def test_send_test_email_delivery_failure(db, failing_transport):
    db.seed(TEMPLATES, "partner_new_lead", {"subject": "Lead", "body": "<p>x</p>"})
    with pytest.raises(CallableError) as exc:
        await EmailTemplateService(db).send_test_email({"templateKey": "partner_new_lead", "to": "a@example.com"})
    assert exc.value.code == "internal"


def test_seed_rejects_non_boolean_overwrite(db):
    with pytest.raises(CallableError) as exc:
        EmailTemplateService(db).seed_default_templates({"overwrite": "maybe"})
    assert exc.value.code == "invalid-argument"
    assert TEMPLATES not in db.store
