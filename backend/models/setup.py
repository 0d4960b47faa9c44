"""
LeadsFlow CRM - Setup models

Encrypted config blob, license payload and the wizard request bodies.
Field names are the JSON keys on disk and on the wire.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


PRODUCT_ID = "LEADSFLOW_CRM"


class EncryptedConfig(BaseModel):
    """Contents of the encrypted config file. Rewritten wholesale."""
    model_config = ConfigDict(extra="ignore")

    mongodbUri: str
    databaseName: str
    jwtSecret: str
    licenseKey: str
    setupCompleted: bool = False
    companyName: str = ""
    companyEmail: str = ""
    adminEmail: str = ""
    createdAt: str = ""

    def is_complete(self) -> bool:
        return bool(self.setupCompleted and self.mongodbUri and self.licenseKey)


class LicenseData(BaseModel):
    """Decrypted license payload. Never persisted in this form."""
    productId: str = ""
    purchaseCode: str = ""
    customerEmail: str = ""
    issuedAt: str = ""
    expiresAt: Optional[str] = None  # None = perpetual
    features: List[str] = []
    maxUsers: Optional[int] = None


class LicenseValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None
    data: Optional[LicenseData] = None


# ==================== WIZARD REQUESTS ====================
# Everything defaults to "" so the orchestrator, not the framework, reports
# missing input.

class ConnectionTestRequest(BaseModel):
    mongodbUri: str = ""
    databaseName: str = ""


class ValidateLicenseRequest(BaseModel):
    licenseKey: str = ""


class SetupCompleteRequest(BaseModel):
    mongodbUri: str = ""
    databaseName: str = ""
    licenseKey: str = ""
    companyName: str = ""
    companyEmail: str = ""
    companyPhone: Optional[str] = ""
    adminName: str = ""
    adminEmail: str = ""
    adminPassword: str = ""
