"""Shared fixtures: sample function sources and an in-memory Firestore."""

import copy
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest


# ---------------------------------------------------------------------------
# Sample function sources
# ---------------------------------------------------------------------------

HTTP_AND_CALLABLE_SOURCE = """\
const functions = require('firebase-functions');
const admin = require('firebase-admin');

exports.helloWorld = functions.https.onRequest(async (req, res) => {
  const snapshot = await admin.firestore().collection('greetings').doc('default').get();
  res.status(200).json({ message: snapshot.data() });
});

createCallableFunction('getProfile', async (data, context) => {
  const uid = context.auth.uid;
  const profile = await admin.firestore().collection('profiles').doc(uid).get();
  return profile.data();
});
"""

TINY_BODY_SOURCE = """\
const functions = require('firebase-functions');

exports.tiny = functions.https.onRequest((req, res) => {});
"""

DOCUMENT_TRIGGER_SOURCE = """\
import * as functions from 'firebase-functions';

export const onOrderCreated = functions.firestore
  .document('users/{userId}/orders/{orderId}')
  .onCreate(async (snap, context) => {
    const order = snap.data();
    await admin.firestore().collection('audit').add({ orderId: context.params.orderId });
  });
"""


@pytest.fixture
def functions_dir(tmp_path):
    """A functions source tree with one HTTP and one callable function."""
    source = tmp_path / "functions"
    (source / "src").mkdir(parents=True)
    (source / "src" / "index.js").write_text(HTTP_AND_CALLABLE_SOURCE, encoding="utf-8")
    return source


# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------

class FakeStore:
    """Backing data and call log shared by every fake object."""

    def __init__(self):
        # collection path -> list of (document id, data); duplicates allowed
        self.collections: Dict[str, List[Tuple[str, Dict[str, Any]]]] = {}
        self.fetches: List[Tuple[str, Optional[int], int]] = []
        self.listed: List[str] = []
        self.failing_fetches: Set[str] = set()
        self.failing_listings: Set[str] = set()

    def add(self, collection_path: str, document_id: str, data: Dict[str, Any]) -> None:
        self.collections.setdefault(collection_path, []).append((document_id, data))

    def subcollections_of(self, document_path: str) -> List[str]:
        prefix = document_path + "/"
        names = []
        for path in self.collections:
            if path.startswith(prefix):
                rest = path[len(prefix):]
                if "/" not in rest and rest not in names:
                    names.append(rest)
        return names


class FakeReference:
    def __init__(self, store: FakeStore, path: str):
        self._store = store
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def collections(self):
        self._store.listed.append(self.path)
        if self.path in self._store.failing_listings:
            raise RuntimeError(f"permission denied listing {self.path}")
        return [
            FakeCollection(self._store, f"{self.path}/{name}")
            for name in self._store.subcollections_of(self.path)
        ]


class FakeSnapshot:
    def __init__(self, store: FakeStore, collection_path: str, document_id: str, data: Dict[str, Any]):
        self.id = document_id
        self._data = data
        self.reference = FakeReference(store, f"{collection_path}/{document_id}")

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


class FakeQuery:
    def __init__(self, store: FakeStore, path: str, limit: Optional[int] = None, offset: int = 0):
        self._store = store
        self.path = path
        self._limit = limit
        self._offset = offset

    def limit(self, count: int) -> "FakeQuery":
        return FakeQuery(self._store, self.path, count, self._offset)

    def offset(self, count: int) -> "FakeQuery":
        return FakeQuery(self._store, self.path, self._limit, count)

    def get(self) -> List[FakeSnapshot]:
        self._store.fetches.append((self.path, self._limit, self._offset))
        if self.path in self._store.failing_fetches:
            raise RuntimeError(f"unavailable: {self.path}")
        documents = self._store.collections.get(self.path, [])
        end = None if self._limit is None else self._offset + self._limit
        return [
            FakeSnapshot(self._store, self.path, document_id, data)
            for document_id, data in documents[self._offset:end]
        ]


class FakeCollection(FakeQuery):
    def __init__(self, store: FakeStore, path: str):
        super().__init__(store, path)
        self.id = path.rsplit("/", 1)[-1]


class FakeFirestore:
    """Just enough of google.cloud.firestore.Client for exports."""

    def __init__(self):
        self.store = FakeStore()

    def add(self, collection_path: str, document_id: str, data: Dict[str, Any]) -> None:
        self.store.add(collection_path, document_id, data)

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self.store, name)


@pytest.fixture
def firestore():
    return FakeFirestore()


@pytest.fixture
def users_with_orders(firestore):
    """Two users, each with three orders."""
    for user_id in ("u1", "u2"):
        firestore.add("users", user_id, {"name": f"User {user_id}"})
        for n in range(1, 4):
            firestore.add(f"users/{user_id}/orders", f"{user_id}-o{n}", {"total": n * 10})
    return firestore
