"""
LeadsFlow CRM - Modeles Lead, Note, Follow-up

Stage/status/source are free strings chosen from the configured lists;
the lists are editable, so they are not enforced here.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator


VALID_LEAD_TYPES = ["individual", "business"]
VALID_PRIORITIES = ["high", "medium", "low"]
VALID_FOLLOWUP_STATUSES = ["scheduled", "completed"]


class LeadCreate(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    source: str
    status: str
    assignedTo: str
    leadType: str = "individual"
    companyName: Optional[str] = None
    productInterest: Optional[str] = None
    priority: str = "medium"
    initialNotes: Optional[str] = None
    customFields: Dict[str, str] = {}

    @field_validator("name", "phone", "source", "status", "assignedTo")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()

    @field_validator("leadType")
    @classmethod
    def validate_lead_type(cls, v):
        if v not in VALID_LEAD_TYPES:
            raise ValueError(f"Invalid lead type: {v}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v not in VALID_PRIORITIES:
            raise ValueError(f"Invalid priority: {v}")
        return v


class LeadUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    status: Optional[str] = None
    assignedTo: Optional[str] = None
    leadType: Optional[str] = None
    companyName: Optional[str] = None
    productInterest: Optional[str] = None
    priority: Optional[str] = None
    initialNotes: Optional[str] = None
    customFields: Optional[Dict[str, str]] = None

    @field_validator("leadType")
    @classmethod
    def validate_lead_type(cls, v):
        if v and v not in VALID_LEAD_TYPES:
            raise ValueError(f"Invalid lead type: {v}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v and v not in VALID_PRIORITIES:
            raise ValueError(f"Invalid priority: {v}")
        return v


class LeadBulkImport(BaseModel):
    # Rows are validated one by one so a bad row does not sink the batch
    leads: List[Dict]


class NoteCreate(BaseModel):
    leadId: str
    content: str

    @field_validator("leadId", "content")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v


class FollowUpCreate(BaseModel):
    leadId: str
    assignedTo: str
    dueDate: str  # YYYY-MM-DD
    dueTime: str
    notes: str = ""

    @field_validator("leadId", "assignedTo", "dueDate", "dueTime")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()

    @field_validator("dueDate")
    @classmethod
    def date_only(cls, v):
        # Accept full ISO timestamps, keep the date part
        return v[:10]


class FollowUpUpdate(BaseModel):
    dueDate: Optional[str] = None
    dueTime: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    completedDate: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v and v not in VALID_FOLLOWUP_STATUSES:
            raise ValueError(f"Invalid status: {v}")
        return v

    @field_validator("dueDate")
    @classmethod
    def date_only(cls, v):
        return v[:10] if v else v
