"""Pytest configuration and fixtures.

The app runs against in-memory stand-ins for Firestore, the Storage bucket and
the model, injected through ``create_app(context=...)``.
"""

import copy
import os
import uuid
from collections import defaultdict

import pytest
from google.cloud.firestore_v1.field_path import parse_field_path

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from aichef.config import settings  # noqa: E402
from aichef.core.context import assemble_context  # noqa: E402
from aichef.main import create_app  # noqa: E402


class FakeNotFound(Exception):
    """Raised by ``update`` on a missing document, like google.api_core NotFound."""


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data) if data is not None else None

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.data[self._collection]

    def get(self):
        self._db.check()
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data, merge=False):
        self._db.check()
        if merge and self.id in self._docs:
            self._docs[self.id].update(copy.deepcopy(data))
        else:
            self._docs[self.id] = copy.deepcopy(data)

    def update(self, fields):
        self._db.check()
        if self.id not in self._docs:
            raise FakeNotFound(self.id)
        # Keys are field paths: "a.b" writes b inside map a, "`a.b`" writes field a.b.
        for key, value in fields.items():
            parts = parse_field_path(key)
            target = self._docs[self.id]
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = copy.deepcopy(value)

    def delete(self):
        self._db.check()
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=()):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)

    def where(self, *, filter):
        return FakeQuery(self._db, self._collection, self._filters + (filter,))

    def stream(self):
        self._db.check()
        self._db.queries.append((self._collection, [(f.field_path, f.op_string, f.value) for f in self._filters]))
        for doc_id, data in list(self._db.data[self._collection].items()):
            if all(self._matches(f, data) for f in self._filters):
                yield FakeSnapshot(FakeDocumentReference(self._db, self._collection, doc_id), data)

    @staticmethod
    def _matches(f, data):
        value = data.get(f.field_path)
        if f.op_string == "==":
            return value == f.value
        if f.op_string == "array_contains_any":
            return any(v in (value or []) for v in f.value)
        raise NotImplementedError(f.op_string)


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id=None):
        return FakeDocumentReference(self._db, self._collection, doc_id or uuid.uuid4().hex[:20])


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def delete(self, ref):
        self._ops.append(ref)

    def commit(self):
        self._db.check()
        self._db.batch_sizes.append(len(self._ops))
        for ref in self._ops:
            self._db.data[ref._collection].pop(ref.id, None)


class FakeFirestore:
    """Just enough of ``google.cloud.firestore.Client`` for the store."""

    def __init__(self):
        self.data = defaultdict(dict)
        self.fail_with = None
        self.batch_sizes = []
        self.queries = []

    def check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def get_all(self, refs):
        self.check()
        return [ref.get() for ref in refs]


class FakeBlob:
    def __init__(self, bucket, path):
        self._bucket = bucket
        self.name = path
        self.public_url = f"https://storage.googleapis.com/{bucket.name}/{path}"

    def upload_from_string(self, data, content_type=None):
        self._bucket.objects[self.name] = (data, content_type)

    def make_public(self):
        self._bucket.public.add(self.name)


class FakeBucket:
    def __init__(self, name="aichef-test"):
        self.name = name
        self.objects = {}
        self.public = set()

    def blob(self, path):
        return FakeBlob(self, path)


class FakeModel:
    """Returns scripted completions and records every call."""

    def __init__(self):
        self.responses = []
        self.calls = []
        self.error = None

    async def complete(self, prompt, *, model, temperature, max_output_tokens=None):
        self.calls.append(
            {"prompt": prompt, "model": model, "temperature": temperature, "max_output_tokens": max_output_tokens}
        )
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else ""


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def context(db, bucket, fake_model):
    return assemble_context(settings, db=db, bucket=bucket, model=fake_model)


@pytest.fixture
def store(context):
    return context.recipes


@pytest.fixture
def favorites(context):
    return context.favorites


@pytest.fixture
def client(context):
    """Create test client."""
    return TestClient(create_app(context=context))


@pytest.fixture
def sample_recipe():
    return {
        "user_id": "user-1",
        "title": "Avocado Toast Deluxe",
        "highlight": "Creamy avocado on crisp toast.",
        "tag": ["Breakfast", "Snack"],
        "ingredients": ["2 slices bread", "1 avocado", "1/2 lime"],
        "instructions": ["Toast the bread.", "Mash the avocado.", "Spread and serve."],
        "nutrition_info": {"calories": 200, "protein": 5},
    }


@pytest.fixture
def png_bytes():
    # PNG signature only; enough for format detection, too small to resize.
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
