"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadsFlow CRM - Setup Orchestrator                                          ║
║                                                                              ║
║  First-run provisioning, strictly sequential:                                ║
║  1. validate input          5. generate JWT secret                           ║
║  2. refuse a second setup   6. connect the live database                     ║
║     or an unwritable store                                                   ║
║  3. validate license        7. seed admin, settings, reference data          ║
║  4. probe the database      8. persist encrypted config, 9. reload runtime   ║
║                                                                              ║
║  Nothing is written to disk before steps 6 and 7 succeed: a config file      ║
║  marked setupCompleted always points at a reachable, seeded database.        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import re
import secrets
from typing import Awaitable, Callable, Dict, List

from pymongo.errors import PyMongoError

from config import MIN_PASSWORD_LENGTH, RuntimeConfig, generate_id, now_iso
from models.setup import EncryptedConfig, LicenseValidationResult, SetupCompleteRequest
from services.auth import hash_password
from services.config_store import EncryptedConfigStore
from services.database import Database, check_connection
from services.errors import (
    ConfigStoreError,
    DatabaseConnectionError,
    LicenseError,
    SeedingError,
    SetupAlreadyCompletedError,
    SetupValidationError,
)
from services.license import validate_license
from services.seed_data import DEFAULT_SETTINGS, REFERENCE_DATA

logger = logging.getLogger("setup")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ConnectionTester = Callable[[str, str], Awaitable[Dict]]
LicenseValidator = Callable[[str], LicenseValidationResult]


def is_valid_email(value: str) -> bool:
    return bool(value and EMAIL_RE.match(value.strip()))


def validate_setup_input(data: SetupCompleteRequest) -> List[str]:
    """All problems with the wizard input, in form order. Empty list = valid."""
    errors = []
    if not data.mongodbUri.strip():
        errors.append("MongoDB URI is required")
    if not data.databaseName.strip():
        errors.append("Database name is required")
    if not data.licenseKey.strip():
        errors.append("License key is required")
    if not data.companyName.strip():
        errors.append("Company name is required")
    if not is_valid_email(data.companyEmail):
        errors.append("Valid company email is required")
    if not data.adminName.strip():
        errors.append("Admin name is required")
    if not is_valid_email(data.adminEmail):
        errors.append("Valid admin email is required")
    if len(data.adminPassword or "") < MIN_PASSWORD_LENGTH:
        errors.append(f"Admin password must be at least {MIN_PASSWORD_LENGTH} characters")
    return errors


class SetupOrchestrator:
    """
    Runs the setup wizard's final step against injected collaborators.
    The probe and the license check are plain callables so tests can stub them.
    """

    def __init__(
        self,
        store: EncryptedConfigStore,
        runtime: RuntimeConfig,
        database: Database,
        connection_tester: ConnectionTester = check_connection,
        license_validator: LicenseValidator = validate_license,
    ):
        self.store = store
        self.runtime = runtime
        self.database = database
        self.connection_tester = connection_tester
        self.license_validator = license_validator

    async def complete_setup(self, data: SetupCompleteRequest) -> Dict:
        # 1. Input
        errors = validate_setup_input(data)
        if errors:
            raise SetupValidationError("Invalid setup data", errors)

        # 2. One setup per installation, and somewhere to record it
        if not self.store.is_setup_required():
            raise SetupAlreadyCompletedError("Setup has already been completed")
        problem = self.store.persist_problem()
        if problem:
            raise ConfigStoreError(problem)

        # 3. License
        license_result = self.license_validator(data.licenseKey.strip())
        if not license_result.valid:
            raise LicenseError(license_result.error or "Invalid license")
        logger.info("[SETUP] License validated")

        mongodb_uri = data.mongodbUri.strip()
        database_name = data.databaseName.strip()

        # 4. Probe
        probe = await self.connection_tester(mongodb_uri, database_name)
        if not probe.get("success"):
            raise DatabaseConnectionError(probe.get("error") or "Failed to connect to database")
        logger.info(f"[SETUP] Database probe succeeded ({database_name})")

        # 5. Secret
        jwt_secret = secrets.token_hex(64)

        # 6. Live connection, with the candidate config
        connected = await self.database.connect(mongodb_uri, database_name)
        if not connected:
            raise DatabaseConnectionError("Failed to connect to database", live=True)

        # 7. Seed
        await self.seed_database(data)

        # 8. Persist
        self.store.save(EncryptedConfig(
            mongodbUri=mongodb_uri,
            databaseName=database_name,
            jwtSecret=jwt_secret,
            licenseKey=data.licenseKey.strip(),
            setupCompleted=True,
            companyName=data.companyName.strip(),
            companyEmail=data.companyEmail.strip().lower(),
            adminEmail=data.adminEmail.strip().lower(),
            createdAt=now_iso(),
        ))

        # 9. Runtime
        self.runtime.reload(self.store)

        logger.info(f"[SETUP] Setup completed for {data.companyName.strip()}")
        return {"success": True, "message": "Setup completed successfully"}

    # ==================== SEEDING ====================

    async def seed_database(self, data: SetupCompleteRequest) -> None:
        db = self.database.db

        try:
            await self.database.ensure_indexes()
        except PyMongoError as e:
            logger.error(f"[SETUP] Index creation failed, continuing: {e}")

        try:
            await self._seed_admin(db, data)
            await self._seed_settings(db, data)
        except PyMongoError as e:
            logger.error(f"[SETUP] Critical seeding failed: {e}")
            raise SeedingError(f"Failed to initialize database: {e}") from e

        for collection, rows in REFERENCE_DATA.items():
            inserted = 0
            for row in rows:
                try:
                    result = await db[collection].update_one(
                        {"name": row["name"]},
                        {"$setOnInsert": {"id": generate_id(), **row, "createdAt": now_iso()}},
                        upsert=True,
                    )
                    if result.upserted_id is not None:
                        inserted += 1
                except PyMongoError as e:
                    logger.error(f"[SETUP] Could not seed {collection} '{row['name']}': {e}")
            logger.info(f"[SETUP] {collection}: {inserted} created, {len(rows) - inserted} already present")

    async def _seed_admin(self, db, data: SetupCompleteRequest) -> None:
        email = data.adminEmail.strip().lower()
        username = await self._admin_username(db, email)
        now = now_iso()

        await db.users.update_one(
            {"email": email},
            {
                "$set": {
                    "name": data.adminName.strip(),
                    "password": hash_password(data.adminPassword),
                    "role": "admin",
                    "isActive": True,
                    "updatedAt": now,
                },
                "$setOnInsert": {
                    "id": generate_id(),
                    "username": username,
                    "email": email,
                    "createdAt": now,
                },
            },
            upsert=True,
        )
        logger.info(f"[SETUP] Admin user ready: {username}")

    async def _admin_username(self, db, email: str) -> str:
        """Email local part, suffixed when another account already owns it"""
        base = email.split("@")[0].lower() or "admin"
        candidate = base
        suffix = 1
        while True:
            owner = await db.users.find_one({"username": candidate}, {"_id": 0, "email": 1})
            if not owner or owner.get("email") == email:
                return candidate
            suffix += 1
            candidate = f"{base}{suffix}"

    async def _seed_settings(self, db, data: SetupCompleteRequest) -> None:
        now = now_iso()
        defaults = {k: v for k, v in DEFAULT_SETTINGS.items()
                    if k not in ("companyName", "companyEmail", "companyPhone")}
        await db.system_settings.update_one(
            {"key": "system"},
            {
                "$set": {
                    "companyName": data.companyName.strip(),
                    "companyEmail": data.companyEmail.strip().lower(),
                    "companyPhone": (data.companyPhone or "").strip(),
                    "updatedAt": now,
                },
                "$setOnInsert": {"id": generate_id(), **defaults, "createdAt": now},
            },
            upsert=True,
        )
        logger.info("[SETUP] System settings ready")
