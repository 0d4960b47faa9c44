"""
LeadsFlow CRM - Encrypted Config Store

One file, one Fernet token. Decrypted it is the EncryptedConfig JSON.

- save(): canonical JSON, encrypted, replaces the file wholesale
- persist_problem(): what would stop save(), checked before setup has side effects
- load(): None when missing or unreadable, never raises
- is_setup_required(): the predicate behind the gate, cached on file mtime
"""

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from cryptography.fernet import InvalidToken
from pydantic import ValidationError

from models.setup import EncryptedConfig
from services.crypto import fernet_for
from services.errors import ConfigCorruptError, ConfigStoreError

logger = logging.getLogger("config_store")


class EncryptedConfigStore:

    def __init__(self, path: Path, encryption_key: Optional[str]):
        self.path = Path(path)
        self._key = encryption_key
        # (mtime_ns, size) -> parsed config, so the gate only pays a stat()
        self._cache_stamp: Optional[Tuple[int, int]] = None
        self._cache_value: Optional[EncryptedConfig] = None

    # ==================== WRITE ====================

    def persist_problem(self) -> Optional[str]:
        """Why save() would fail right now, or None when it can write"""
        if not self._key:
            return "CONFIG_ENCRYPTION_KEY is not set, cannot persist configuration"
        directory = self.path.parent
        while not directory.exists() and directory != directory.parent:
            directory = directory.parent
        if not os.access(directory, os.W_OK):
            return f"Configuration directory {directory} is not writable"
        return None

    def can_persist(self) -> bool:
        return self.persist_problem() is None

    def save(self, config: EncryptedConfig) -> None:
        """Encrypt and overwrite the config file. Failures propagate."""
        if not self._key:
            raise ConfigStoreError("CONFIG_ENCRYPTION_KEY is not set, cannot persist configuration")

        payload = json.dumps(config.model_dump(), sort_keys=True, separators=(",", ":"))
        token = fernet_for(self._key).encrypt(payload.encode("utf-8")).decode("ascii")

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(token, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"[CONFIG_STORE] Write failed for {self.path}: {e}")
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise ConfigStoreError(f"Failed to write configuration: {e}") from e

        self._remember(config)
        logger.info(f"[CONFIG_STORE] Configuration saved to {self.path}")

    # ==================== READ ====================

    def load(self) -> Optional[EncryptedConfig]:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            self._forget()
            return None
        except OSError as e:
            logger.error(f"[CONFIG_STORE] Cannot stat {self.path}: {e}")
            return None

        stamp = (stat.st_mtime_ns, stat.st_size)
        if stamp == self._cache_stamp:
            return self._cache_value

        try:
            config = self._read()
        except ConfigCorruptError as e:
            logger.error(f"[CONFIG_STORE] Ignoring unreadable config: {e}")
            config = None

        self._cache_stamp = stamp
        self._cache_value = config
        return config

    def _read(self) -> EncryptedConfig:
        if not self._key:
            raise ConfigCorruptError("CONFIG_ENCRYPTION_KEY is not set")
        try:
            token = self.path.read_bytes()
            decrypted = fernet_for(self._key).decrypt(token.strip())
            return EncryptedConfig.model_validate(json.loads(decrypted))
        except OSError as e:
            raise ConfigCorruptError(f"read failed: {e}") from e
        except InvalidToken as e:
            raise ConfigCorruptError("decryption failed") from e
        except (ValueError, ValidationError) as e:
            raise ConfigCorruptError(f"invalid content: {e}") from e

    def is_setup_required(self) -> bool:
        config = self.load()
        return config is None or not config.is_complete()

    # ==================== CACHE ====================

    def _remember(self, config: EncryptedConfig) -> None:
        try:
            stat = self.path.stat()
        except OSError:
            self._forget()
            return
        self._cache_stamp = (stat.st_mtime_ns, stat.st_size)
        self._cache_value = config

    def _forget(self) -> None:
        self._cache_stamp = None
        self._cache_value = None
