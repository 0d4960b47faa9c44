"""
LeadsFlow CRM - License Validator

License format: BASE64(FERNET(JSON(LicenseData)))

Validation is local: no license server, no database. The secret ships with
the product, so this deters tampering but does not stop a determined user
from issuing their own license.
"""

import base64
import binascii
import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from cryptography.fernet import InvalidToken
from pydantic import ValidationError

from config import now_iso, parse_iso
from models.setup import PRODUCT_ID, LicenseData, LicenseValidationResult
from services.crypto import fernet_for

logger = logging.getLogger("license")

LICENSE_SECRET = os.environ.get("LICENSE_SECRET", "LEADSFLOW_LICENSE_SECRET_2024")


def validate_license(license_key: str, now: Optional[datetime] = None) -> LicenseValidationResult:
    """Decode, decrypt and check a license key."""
    if not license_key or not license_key.strip():
        return LicenseValidationResult(valid=False, error="License key is required")

    try:
        token = base64.b64decode(license_key.strip(), validate=True)
        decrypted = fernet_for(LICENSE_SECRET).decrypt(token)
        raw = json.loads(decrypted)
    except (binascii.Error, ValueError, InvalidToken):
        return LicenseValidationResult(valid=False, error="Invalid license key format")

    if not isinstance(raw, dict):
        return LicenseValidationResult(valid=False, error="Invalid license key format")

    try:
        data = LicenseData.model_validate(raw)
    except ValidationError:
        return LicenseValidationResult(valid=False, error="Invalid license data")

    if not data.productId or not data.purchaseCode or not data.customerEmail:
        return LicenseValidationResult(valid=False, error="Invalid license data")

    if data.productId != PRODUCT_ID:
        return LicenseValidationResult(valid=False, error="License is not valid for this product")

    if data.expiresAt:
        try:
            expires_at = parse_iso(data.expiresAt)
        except ValueError:
            return LicenseValidationResult(valid=False, error="Invalid license data")
        if (now or datetime.now(timezone.utc)) > expires_at:
            return LicenseValidationResult(valid=False, error="License has expired")

    logger.info(
        f"License validated: customer={data.customerEmail} "
        f"purchase={data.purchaseCode[:8]}..."
    )
    return LicenseValidationResult(valid=True, data=data)


def generate_license(data: LicenseData) -> str:
    """Issue a license key. Test/demo use; not part of the trust boundary."""
    payload = json.dumps(data.model_dump(exclude_none=True))
    token = fernet_for(LICENSE_SECRET).encrypt(payload.encode("utf-8"))
    return base64.b64encode(token).decode("ascii")


def generate_test_license() -> str:
    """Perpetual all-features license for development installs"""
    return generate_license(LicenseData(
        productId=PRODUCT_ID,
        purchaseCode=f"TEST-{int(datetime.now(timezone.utc).timestamp() * 1000)}",
        customerEmail="test@example.com",
        issuedAt=now_iso(),
        features=["all"],
        maxUsers=100,
    ))


def has_feature(data: LicenseData, feature: str) -> bool:
    return "all" in data.features or feature in data.features


def can_add_user(data: LicenseData, current_user_count: int) -> bool:
    if not data.maxUsers:
        return True
    return current_user_count < data.maxUsers
