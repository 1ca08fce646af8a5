"""Medical document and health profile models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MedicalDocument(BaseModel):
    """Uploaded medical document as stored in the document store."""

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    file_name: str
    tags: List[str] = Field(default_factory=list)
    uploaded_at: datetime
    summary: Optional[str] = None
    file_content: Optional[str] = Field(
        default=None, description="Text extracted from the file"
    )
    file_path: Optional[str] = Field(default=None, description="Object store key")
    file_size: Optional[int] = None
    file_type: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: List[str]) -> List[str]:
        seen = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class DocumentResponse(BaseModel):
    """Document as returned by the API."""

    id: str
    file_name: str
    tags: List[str]
    uploaded_at: datetime
    summary: Optional[str] = None
    file_content: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None

    @classmethod
    def from_document(cls, document: MedicalDocument) -> "DocumentResponse":
        return cls(**document.model_dump(exclude={"user_id", "file_path"}))


class EmergencyContact(BaseModel):
    name: str
    phone: str


class HealthProfile(BaseModel):
    """Critical medical facts exposed on the public emergency page."""

    user_id: str
    full_name: Optional[str] = None
    blood_group: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    emergency_contact: Optional[EmergencyContact] = None
    updated_at: datetime


class HealthProfileUpdate(BaseModel):
    """Request model for updating the caller's health profile."""

    full_name: Optional[str] = Field(default=None, max_length=200)
    blood_group: Optional[str] = Field(default=None, max_length=8)
    allergies: List[str] = Field(default_factory=list)
    emergency_contact: Optional[EmergencyContact] = None

    model_config = {"extra": "forbid"}


class EmergencyQRResponse(BaseModel):
    emergency_url: str
    qr_code: str = Field(..., description="PNG data URL encoding emergency_url")
