"""
LeadsFlow CRM - Modeles Configuration
Pipeline stages, lead sources/statuses, system settings, login channels.
"""

from typing import Optional

from pydantic import BaseModel, field_validator


class PipelineStageCreate(BaseModel):
    name: str
    order: int
    color: str

    @field_validator("name", "color")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()


class LeadSourceCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class LeadStatusCreate(BaseModel):
    name: str
    color: str

    @field_validator("name", "color")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()


class SystemSettingsUpdate(BaseModel):
    companyName: Optional[str] = None
    companyEmail: Optional[str] = None
    companyPhone: Optional[str] = None
    dateFormat: Optional[str] = None
    timeFormat: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("timeFormat")
    @classmethod
    def validate_time_format(cls, v):
        if v and v not in ("12h", "24h"):
            raise ValueError("timeFormat must be 12h or 24h")
        return v


class EmailAuthConfigUpdate(BaseModel):
    emailAuthEnabled: Optional[bool] = None
    emailSmtpServer: Optional[str] = None
    emailSmtpPort: Optional[int] = None
    emailSmtpUsername: Optional[str] = None
    emailSmtpPassword: Optional[str] = None
    emailSmtpSecure: Optional[bool] = None
    emailFromAddress: Optional[str] = None
    emailVerificationRequired: Optional[bool] = None


class WhatsAppAuthConfigUpdate(BaseModel):
    whatsappEnabled: Optional[bool] = None
    whatsappBusinessAccountId: Optional[str] = None
    whatsappPhoneNumberId: Optional[str] = None
    whatsappAccessToken: Optional[str] = None
    whatsappWebhookToken: Optional[str] = None
