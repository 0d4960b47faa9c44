"""
LeadsFlow CRM - Reset a user's password (ops only)
Reads the MongoDB location from the encrypted config, like the server.

Run: python scripts/reset_password.py <username-or-email> <new-password>
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from config import CONFIG_ENCRYPTION_KEY, CONFIG_FILE_PATH, MIN_PASSWORD_LENGTH, RuntimeConfig, now_iso
from services.auth import hash_password
from services.config_store import EncryptedConfigStore


async def reset_password(identifier: str, new_password: str) -> int:
    runtime = RuntimeConfig.from_env()
    runtime.reload(EncryptedConfigStore(CONFIG_FILE_PATH, CONFIG_ENCRYPTION_KEY))
    if not runtime.mongodb_uri:
        print("No MongoDB URI: complete the setup wizard or set MONGODB_URI")
        return 1

    client = AsyncIOMotorClient(runtime.mongodb_uri, serverSelectionTimeoutMS=5000)
    try:
        db = client[runtime.database_name]
        identifier = identifier.strip().lower()
        user = await db.users.find_one(
            {"$or": [{"username": identifier}, {"email": identifier}]},
            {"_id": 0, "id": 1, "username": 1, "role": 1},
        )
        if not user:
            print(f"No user matches '{identifier}'")
            return 1

        await db.users.update_one(
            {"id": user["id"]},
            {"$set": {"password": hash_password(new_password), "updatedAt": now_iso()}},
        )
        print(f"Password reset for {user['username']} ({user.get('role')})")
        return 0
    finally:
        client.close()


def main() -> int:
    if len(sys.argv) != 3:
        print(__doc__)
        return 2

    identifier, new_password = sys.argv[1], sys.argv[2]
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return 2

    return asyncio.run(reset_password(identifier, new_password))


if __name__ == "__main__":
    sys.exit(main())
