"""Email router - template test sends and seeding"""

import logging

from fastapi import APIRouter, Depends

from ...auth import ADMIN_ROLES, Caller, require_roles
from ...firestore import get_db
from ...schemas import CallableRequest, callable_result
from .service import EmailTemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/callable", tags=["Email Templates"])


def get_email_template_service(db=Depends(get_db)) -> EmailTemplateService:
    """Dependency injection for EmailTemplateService"""
    return EmailTemplateService(db)


@router.post("/sendTestEmail")
async def send_test_email(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(ADMIN_ROLES)),
    service: EmailTemplateService = Depends(get_email_template_service),
):
    """Send a template populated with sample data"""
    return callable_result(await service.send_test_email(body.data))


@router.post("/seedDefaultTemplates")
async def seed_default_templates(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(ADMIN_ROLES)),
    service: EmailTemplateService = Depends(get_email_template_service),
):
    """Write the built-in templates to the template store"""
    logger.info(f"🌱 {caller.uid} seeding default email templates")
    return callable_result(service.seed_default_templates(body.data))
