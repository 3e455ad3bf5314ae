"""Email repository - Firestore operations for the template store"""

from typing import Optional

from ...firestore import TEMPLATES
from ...utils.formatters import now_iso
from .schemas import EmailTemplate


class TemplateRepository:
    """Repository for emailTemplates documents"""

    @staticmethod
    def get_template(db, doc_id: str) -> Optional[EmailTemplate]:
        """Get a template document by its key, or None"""
        snapshot = db.collection(TEMPLATES).document(doc_id).get()
        if not snapshot.exists:
            return None
        return EmailTemplate.from_document(snapshot.id, snapshot.to_dict())

    @staticmethod
    def seed_templates(db, templates: list[dict], overwrite: bool = False) -> dict:
        """Write built-in templates in one batch, skipping existing ones unless overwrite"""
        counts = {"created": 0, "updated": 0, "skipped": 0}
        batch = db.batch()
        timestamp = now_iso()

        for template in templates:
            ref = db.collection(TEMPLATES).document(template["key"])
            exists = ref.get().exists
            if exists and not overwrite:
                counts["skipped"] += 1
                continue

            data = {"scope": "global", "enabled": True, **template, "updatedAt": timestamp}
            if exists:
                counts["updated"] += 1
            else:
                data["createdAt"] = timestamp
                counts["created"] += 1
            batch.set(ref, data, merge=exists)

        batch.commit()
        return counts
