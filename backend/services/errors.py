"""
LeadsFlow CRM - Setup error taxonomy

Each error carries the HTTP status the setup routes answer with.
"""

from typing import List, Optional


class SetupError(Exception):
    """Base class for failures of the setup flow"""
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class SetupValidationError(SetupError):
    """Missing or malformed wizard input. Raised before any side effect."""
    status_code = 400


class SetupAlreadyCompletedError(SetupError):
    status_code = 409


class LicenseError(SetupError):
    status_code = 400


class DatabaseConnectionError(SetupError):
    """Probe or live connect failure. The probe is the operator's to retry."""
    status_code = 400

    def __init__(self, message: str, live: bool = False):
        super().__init__(message)
        if live:
            self.status_code = 500


class SeedingError(SetupError):
    """A critical seed (admin user, system settings) could not be written"""
    status_code = 500


class ConfigStoreError(SetupError):
    """The encrypted config could not be written"""
    status_code = 500


class ConfigCorruptError(Exception):
    """Encrypted config unreadable. Never propagated past the store."""
