"""
LeadsFlow CRM - Test fixtures

MongoDB is replaced by an in-memory double that understands the subset of
the motor API the application uses (filters with $or/$in/$gt/$lt/$ne,
$set/$setOnInsert/$inc, upserts, projections, sort/limit/to_list).
Run: cd backend && pytest tests/ -v
"""

import copy
import itertools
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import RuntimeConfig, generate_id, now_iso
from models.setup import EncryptedConfig
from services.auth import create_token, hash_password
from services.config_store import EncryptedConfigStore
from services.database import Database
from services.license import generate_test_license

TEST_ENCRYPTION_KEY = "test-config-encryption-key"
TEST_JWT_SECRET = "test-jwt-secret"
TEST_PASSWORD = "Secret123"

_object_ids = itertools.count(1)


# ═══════════════════════════════════════════════════════════════
# In-memory MongoDB double
# ═══════════════════════════════════════════════════════════════

def _matches(doc: Dict, query: Optional[Dict]) -> bool:
    for key, expected in (query or {}).items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in expected):
                return False
            continue
        value = doc.get(key)
        if isinstance(expected, dict) and any(k.startswith("$") for k in expected):
            for op, arg in expected.items():
                if op == "$in" and value not in arg:
                    return False
                if op == "$ne" and value == arg:
                    return False
                if op == "$gt" and not (value is not None and value > arg):
                    return False
                if op == "$lt" and not (value is not None and value < arg):
                    return False
        elif value != expected:
            return False
    return True


def _project(doc: Dict, projection: Optional[Dict]) -> Dict:
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        result = {k: doc[k] for k in included if k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            result["_id"] = doc["_id"]
        return result
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


def _apply(doc: Dict, update: Dict, inserting: bool) -> None:
    for key, value in update.get("$set", {}).items():
        doc[key] = copy.deepcopy(value)
    if inserting:
        for key, value in update.get("$setOnInsert", {}).items():
            doc[key] = copy.deepcopy(value)
    for key, value in update.get("$inc", {}).items():
        doc[key] = doc.get(key, 0) + value


class FakeCursor:

    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        keys = key if isinstance(key, list) else [(key, direction)]
        for field, order in reversed(keys):
            present = [d for d in self._docs if d.get(field) is not None]
            missing = [d for d in self._docs if d.get(field) is None]
            present.sort(key=lambda d: d[field], reverse=order < 0)
            self._docs = present + missing
        return self

    def skip(self, n):
        self._docs = self._docs[n:]
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


class FakeCollection:

    def __init__(self, name: str, unique=()):
        self.name = name
        self.docs = []
        self.unique = set(unique)

    def _check_unique(self, doc, ignore=None):
        for field in self.unique:
            if doc.get(field) is None:
                continue
            for other in self.docs:
                if other is not ignore and other.get(field) == doc.get(field):
                    raise DuplicateKeyError(f"E11000 duplicate key {self.name}.{field}", 11000)

    def find(self, query=None, projection=None):
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query)])

    async def find_one(self, query=None, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    async def insert_one(self, doc):
        self._check_unique(doc)
        doc["_id"] = next(_object_ids)
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                _apply(doc, update, inserting=False)
                return SimpleNamespace(matched_count=1, modified_count=int(before != doc), upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        doc = {k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)}
        _apply(doc, update, inserting=True)
        self._check_unique(doc)
        doc["_id"] = next(_object_ids)
        self.docs.append(doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=doc["_id"])

    async def update_many(self, query, update):
        modified = 0
        for doc in self.docs:
            if _matches(doc, query):
                _apply(doc, update, inserting=False)
                modified += 1
        return SimpleNamespace(matched_count=modified, modified_count=modified)

    async def delete_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        kept = [d for d in self.docs if not _matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def create_index(self, keys, unique=False, **kwargs):
        if unique and isinstance(keys, str):
            self.unique.add(keys)
        return f"{keys}_idx"


class FakeMongo:

    def __init__(self):
        self._collections = {}

    def __getitem__(self, name) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getattr__(self, name) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def command(self, name):
        return {"ok": 1}


class FakeDatabase(Database):
    """Database handle whose connect() attaches the in-memory double"""

    def __init__(self, mongo: FakeMongo, connect_ok: bool = True):
        super().__init__(retries=1, retry_delay=0)
        self.mongo = mongo
        self.connect_ok = connect_ok
        self.connect_calls = []

    async def connect(self, uri, database_name):
        self.connect_calls.append((uri, database_name))
        if not self.connect_ok:
            return False
        self._db = self.mongo
        return True

    async def close(self):
        self._db = None


# ═══════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def mongo():
    return FakeMongo()


@pytest.fixture
def store(tmp_path):
    return EncryptedConfigStore(tmp_path / "config.encrypted", TEST_ENCRYPTION_KEY)


@pytest.fixture
def license_key():
    return generate_test_license()


@pytest.fixture
def completed_config(license_key):
    return EncryptedConfig(
        mongodbUri="mongodb://localhost:27017",
        databaseName="leadsflow_test",
        jwtSecret=TEST_JWT_SECRET,
        licenseKey=license_key,
        setupCompleted=True,
        companyName="Acme",
        companyEmail="contact@acme.test",
        adminEmail="admin@acme.test",
        createdAt=now_iso(),
    )


def make_user(mongo: FakeMongo, username: str, role: str = "sales", **extra) -> Dict:
    now = now_iso()
    user = {
        "id": generate_id(),
        "username": username,
        "name": extra.pop("name", username.title()),
        "email": extra.pop("email", f"{username}@acme.test"),
        "phone": extra.pop("phone", None),
        "password": hash_password(extra.pop("password", TEST_PASSWORD)),
        "role": role,
        "isActive": extra.pop("isActive", True),
        "createdAt": now,
        "updatedAt": now,
        **extra,
    }
    mongo.users.docs.append(copy.deepcopy(user))
    return user


def auth_h(user: Dict) -> Dict:
    return {"Authorization": f"Bearer {create_token(user, TEST_JWT_SECRET)}"}


@pytest.fixture
def setup_client(store, mongo):
    """Fresh installation: no config file"""
    from server import create_app
    app = create_app(store=store, runtime=RuntimeConfig(), database=FakeDatabase(mongo),
                     connection_tester=_probe_ok)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def app_client(store, mongo, completed_config):
    """Installation whose setup is complete, connected to the in-memory database"""
    from server import create_app
    store.save(completed_config)
    app = create_app(store=store, runtime=RuntimeConfig(), database=FakeDatabase(mongo),
                     connection_tester=_probe_ok)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin(mongo):
    return make_user(mongo, "admin", role="admin", name="Alice Admin")


@pytest.fixture
def sales(mongo):
    return make_user(mongo, "bob", role="sales", name="Bob Sales", phone="+15550001111")


async def _probe_ok(uri, database_name):
    return {"success": True}
