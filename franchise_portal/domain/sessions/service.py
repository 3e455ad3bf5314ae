"""Recurring session generation for weekly memberships"""

import logging

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from ...auth import Caller, ensure_location_access
from ...errors import CallableError
from ...utils.formatters import now_iso
from .repository import SessionRepository
from .schemas import GenerateSessionsRequest

logger = logging.getLogger(__name__)


def session_id_for(sale_id: str, date: str) -> str:
    return f"{sale_id}_{date}"


def weekly_dates(start_date: str, weeks: int) -> list[str]:
    start = isoparse(start_date).date()
    return [(start + relativedelta(weeks=i)).isoformat() for i in range(weeks)]


def generate_weekly_sessions(db, sale_id: str, start_date: str, time: str, weeks: int) -> dict:
    """
    Create one scheduled session per week for a sale.

    Session ids are derived from the sale and the date, so dates that already
    have a session are skipped and re-running is safe.
    """
    sale = SessionRepository.get_sale(db, sale_id)
    if sale is None:
        raise CallableError("not-found", f"Sale {sale_id} not found.")

    batch = db.batch()
    created = 0
    skipped = 0
    timestamp = now_iso()

    for date in weekly_dates(start_date, weeks):
        ref = SessionRepository.session_ref(db, session_id_for(sale_id, date))
        if ref.get().exists:
            skipped += 1
            continue
        batch.set(
            ref,
            {
                "saleId": sale_id,
                "locationId": sale.get("locationId"),
                "parentId": sale.get("parentId"),
                "parentEmail": sale.get("customerEmail"),
                "parentName": sale.get("customerName"),
                "childName": sale.get("studentName"),
                "date": date,
                "time": time,
                "status": "scheduled",
                "createdAt": timestamp,
            },
        )
        created += 1

    if created:
        batch.commit()

    logger.info(f"✅ Generated {created} sessions for sale {sale_id} ({skipped} already existed)")
    return {"created": created, "skipped": skipped}


class SessionService:
    """Service for session scheduling"""

    def __init__(self, db):
        self.db = db

    def generate(self, payload: dict, caller: Caller) -> dict:
        try:
            request = GenerateSessionsRequest.model_validate(payload or {})
        except ValidationError as e:
            raise CallableError("invalid-argument", "saleId, startDate, time and weeks are required.") from e

        try:
            weekly_dates(request.startDate, 1)
        except ValueError as e:
            raise CallableError("invalid-argument", f"Invalid startDate: {request.startDate}") from e

        sale = SessionRepository.get_sale(self.db, request.saleId)
        if sale is None:
            raise CallableError("not-found", f"Sale {request.saleId} not found.")
        ensure_location_access(caller, sale.get("locationId"))

        return generate_weekly_sessions(
            self.db, request.saleId, request.startDate, request.time, request.weeks
        )
