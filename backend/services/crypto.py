"""
Symmetric encryption helpers (Fernet)
"""

import base64
from hashlib import sha256

from cryptography.fernet import Fernet


def fernet_for(secret: str) -> Fernet:
    """Fernet instance keyed by a passphrase of any length (SHA-256 derived)."""
    key_bytes = sha256(secret.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(key_bytes))
