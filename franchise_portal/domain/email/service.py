"""Email template service - operator actions on the template store"""

import logging
from datetime import datetime

from pydantic import ValidationError

from ...email_service import resolve_template, send_templated_email
from ...email_templates import DEFAULT_TEMPLATES, SAMPLE_MERGE_DATA
from ...errors import CallableError
from ...shared.validators import validate_email
from .repository import TemplateRepository
from .schemas import SeedTemplatesRequest, SendTestEmailRequest

logger = logging.getLogger(__name__)


class EmailTemplateService:
    """Service for sending test emails and seeding the template store"""

    def __init__(self, db):
        self.db = db
        self.repo = TemplateRepository()

    async def send_test_email(self, payload: dict) -> dict:
        """Render a template with sample data and send it to the operator"""
        try:
            request = SendTestEmailRequest.model_validate(payload or {})
            to = validate_email(request.to)
        except (ValidationError, ValueError) as e:
            raise CallableError("invalid-argument", "templateKey and a valid 'to' address are required.") from e
        if not to:
            raise CallableError("invalid-argument", "A recipient address is required.")

        if resolve_template(self.db, request.templateKey, request.country) is None:
            raise CallableError("not-found", f"Template {request.templateKey} not found.")

        merge_data = {
            **SAMPLE_MERGE_DATA,
            "year": datetime.now().year,
            **(request.mergeData or {}),
        }
        sent = await send_templated_email(
            self.db,
            to,
            request.templateKey,
            merge_data,
            country=request.country,
            allow_year_override=True,
        )
        if not sent:
            raise CallableError("internal", "Failed to send the test email.")

        logger.info(f"✅ Test email for {request.templateKey} sent to {to}")
        return {"success": True}

    def seed_default_templates(self, payload: dict) -> dict:
        """Write the built-in global templates"""
        try:
            request = SeedTemplatesRequest.model_validate(payload or {})
        except ValidationError as e:
            raise CallableError("invalid-argument", "overwrite must be true or false.") from e
        counts = self.repo.seed_templates(self.db, DEFAULT_TEMPLATES, overwrite=request.overwrite)
        logger.info(f"✅ Seeded email templates (overwrite={request.overwrite}): {counts}")
        return {"success": True, **counts}
