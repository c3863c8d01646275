"""
In-memory stand-in for the Firestore client used by the Firestore code paths
"""

import copy
import uuid

import pytest

from restopos.core.config import settings


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, store, collection, doc_id):
        self._store = store
        self._collection = collection
        self.id = doc_id

    def _docs(self):
        return self._store.collections.setdefault(self._collection, {})

    def get(self):
        return FakeSnapshot(self, copy.deepcopy(self._docs().get(self.id)))

    def set(self, data, merge=False):
        if merge and self.id in self._docs():
            self._docs()[self.id].update(copy.deepcopy(data))
        else:
            self._docs()[self.id] = copy.deepcopy(data)

    def update(self, fields):
        if self.id not in self._docs():
            raise KeyError(f"No document to update: {self._collection}/{self.id}")
        self._docs()[self.id].update(copy.deepcopy(fields))

    def delete(self):
        self._docs().pop(self.id, None)


class FakeQuery:
    OPS = {
        "==": lambda a, b: a == b,
        ">=": lambda a, b: a is not None and a >= b,
        "<=": lambda a, b: a is not None and a <= b,
    }

    def __init__(self, store, collection, filters=()):
        self._store = store
        self._collection = collection
        self._filters = list(filters)

    def where(self, field, op, value):
        return FakeQuery(self._store, self._collection, self._filters + [(field, op, value)])

    def get(self):
        docs = self._store.collections.get(self._collection, {})
        results = []
        for doc_id, data in list(docs.items()):
            if all(self.OPS[op](data.get(field), value) for field, op, value in self._filters):
                results.append(FakeSnapshot(FakeDocument(self._store, self._collection, doc_id), copy.deepcopy(data)))
        return results


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocument(self._store, self._collection, doc_id or uuid.uuid4().hex)


class FakeBatch:
    def __init__(self, store):
        self._store = store
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, fields):
        self._ops.append(lambda: ref.update(fields))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        if self._store.fail_next_batch:
            self._store.fail_next_batch = False
            raise RuntimeError("batch write failed")
        for op in self._ops:
            op()


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.fail_next_batch = False

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)


FIRESTORE_CLIENT_MODULES = [
    "restopos.services.repositories",
    "restopos.services.catalog_repositories",
    "restopos.services.user_repositories",
    "restopos.services.table_service",
    "restopos.services.transaction_service",
]


@pytest.fixture
def fake_firestore(monkeypatch):
    """Switch the services to the Firestore code paths backed by memory"""
    store = FakeFirestore()
    monkeypatch.setattr(settings, "USE_FIREBASE", True)
    for module in FIRESTORE_CLIENT_MODULES:
        monkeypatch.setattr(f"{module}.get_firestore_client", lambda: store)
    return store
