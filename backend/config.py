"""
Configuration and shared helpers

Environment is read once from .env. The values seed the RuntimeConfig, which
is then overwritten from the encrypted config file when one exists.
"""

import os
import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Request

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger("config")


# ==================== ENVIRONMENT ====================

PORT = int(os.environ.get('PORT', '5000'))
APP_ENV = os.environ.get('APP_ENV', 'development')
APP_NAME = os.environ.get('APP_NAME', 'LeadsFlow CRM')

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

# No default: without it the encrypted config can neither be read nor written
CONFIG_ENCRYPTION_KEY = os.environ.get('CONFIG_ENCRYPTION_KEY') or None
CONFIG_FILE_PATH = Path(os.environ.get('CONFIG_FILE_PATH', str(ROOT_DIR / 'config.encrypted')))

JWT_ALGORITHM = "HS256"
JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS', '7'))

DB_CONNECT_RETRIES = int(os.environ.get('DB_CONNECT_RETRIES', '5'))
DB_CONNECT_RETRY_DELAY = float(os.environ.get('DB_CONNECT_RETRY_DELAY', '5'))
DB_TEST_TIMEOUT_MS = int(os.environ.get('DB_TEST_TIMEOUT_MS', '5000'))

MIN_PASSWORD_LENGTH = 6


def is_production() -> bool:
    return APP_ENV.lower() == 'production'


# ==================== RUNTIME CONFIG ====================

@dataclass
class RuntimeConfig:
    """
    The one authoritative copy of the active configuration for this process.

    Built from the environment at startup, then replaced field by field from
    the encrypted config file through reload(). Nothing else writes to it.
    """
    mongodb_uri: str = ""
    database_name: str = "leadsflow"
    jwt_secret: str = ""
    license_key: str = ""
    setup_completed: bool = False

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        return cls(
            mongodb_uri=os.environ.get('MONGODB_URI', ''),
            database_name=os.environ.get('DATABASE_NAME', 'leadsflow'),
            jwt_secret=os.environ.get('JWT_SECRET', ''),
            license_key=os.environ.get('LICENSE_KEY', ''),
            setup_completed=os.environ.get('SETUP_COMPLETED', '').lower() == 'true',
        )

    def reload(self, store) -> bool:
        """
        Overwrite this config from the encrypted store.
        Returns False (and leaves the config untouched) when no config loads.
        """
        stored = store.load()
        if stored is None:
            return False

        self.mongodb_uri = stored.mongodbUri
        self.database_name = stored.databaseName
        self.jwt_secret = stored.jwtSecret
        self.license_key = stored.licenseKey
        self.setup_completed = stored.setupCompleted

        logger.info(f"[CONFIG] Runtime config reloaded (database={self.database_name})")
        return True


# ==================== HELPERS ====================

def generate_id() -> str:
    """New document id"""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Current UTC time as ISO string"""
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp, tolerating a trailing Z. Naive values are UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_runtime(request: Request) -> RuntimeConfig:
    """FastAPI dependency: the process RuntimeConfig"""
    return request.app.state.runtime
