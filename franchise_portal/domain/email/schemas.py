"""Email domain schemas - Pydantic models for stored templates and callables"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class EmailTemplate(BaseModel):
    """One notification's stored content (document in emailTemplates)"""

    model_config = ConfigDict(extra="ignore")

    key: str
    scope: str = "global"
    enabled: bool = True
    subject: str = ""
    body: str = ""
    headerTitle: Optional[str] = None
    headerSubtitle: Optional[str] = None
    headerBg: Optional[str] = None
    mergeTags: list[str] = []
    category: Optional[str] = None
    createdAt: Optional[Any] = None
    updatedAt: Optional[Any] = None

    @field_validator("enabled", mode="before")
    @classmethod
    def default_enabled(cls, v):
        # Only an explicit False disables a template
        return v is not False

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "EmailTemplate":
        values = {"key": doc_id, **(data or {})}
        return cls.model_validate(values)


class SendTestEmailRequest(BaseModel):
    """Schema for sendTestEmail"""

    templateKey: str
    to: str
    country: Optional[str] = None
    mergeData: Optional[dict[str, Any]] = None


class SeedTemplatesRequest(BaseModel):
    """Schema for seedDefaultTemplates"""

    overwrite: bool = False
