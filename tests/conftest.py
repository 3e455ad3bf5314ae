"""Shared fixtures: in-memory Firestore, captured email sends and a mocked Stripe API"""

import copy
import itertools
from urllib.parse import parse_qsl

import httpx
import pytest
import resend
from google.cloud.firestore_v1.transforms import ArrayRemove, ArrayUnion

from franchise_portal.domain.payments.stripe_client import StripeClient

# ============================================================================
# FIRESTORE
# ============================================================================

_auto_ids = itertools.count(1)


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


def _apply_transform(current, value):
    if isinstance(value, ArrayUnion):
        merged = list(current or [])
        for item in value.values:
            if item not in merged:
                merged.append(item)
        return merged
    if isinstance(value, ArrayRemove):
        return [item for item in (current or []) if item not in value.values]
    return copy.deepcopy(value)


class FakeDocument:
    def __init__(self, store, collection, doc_id):
        self._store = store
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._store.setdefault(self._collection, {})

    def get(self):
        return FakeSnapshot(self.id, self._docs.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._docs:
            current = self._docs[self.id]
            for key, value in data.items():
                current[key] = _apply_transform(current.get(key), value)
        else:
            self._docs[self.id] = {k: _apply_transform(None, v) for k, v in data.items()}

    def update(self, updates):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection}/{self.id}")
        current = self._docs[self.id]
        for key, value in updates.items():
            current[key] = _apply_transform(current.get(key), value)


class FakeQuery:
    def __init__(self, store, collection, filters=None, limit=None):
        self._store = store
        self._collection = collection
        self._filters = filters or []
        self._limit = limit

    def where(self, filter=None):
        return FakeQuery(self._store, self._collection, self._filters + [filter], self._limit)

    def limit(self, count):
        return FakeQuery(self._store, self._collection, self._filters, count)

    def stream(self):
        results = []
        for doc_id, data in self._store.get(self._collection, {}).items():
            if all(self._matches(data, f) for f in self._filters):
                results.append(FakeSnapshot(doc_id, data))
        return results[: self._limit] if self._limit else results

    @staticmethod
    def _matches(data, field_filter):
        value = data.get(field_filter.field_path)
        if field_filter.op_string == "==":
            return value == field_filter.value
        if field_filter.op_string == "in":
            return value in field_filter.value
        raise NotImplementedError(field_filter.op_string)


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocument(self._store, self._collection, doc_id or f"auto{next(_auto_ids)}")


class FakeBatch:
    def __init__(self):
        self._writes = []
        self.committed = False

    def set(self, ref, data, merge=False):
        self._writes.append((ref, data, merge))

    def commit(self):
        for ref, data, merge in self._writes:
            ref.set(data, merge=merge)
        self.committed = True


class FakeFirestore:
    """Just enough of firestore.Client for the repositories"""

    def __init__(self):
        self.store = {}

    def collection(self, name):
        return FakeCollection(self.store, name)

    def batch(self):
        return FakeBatch()

    # helpers for tests
    def seed(self, collection, doc_id, data):
        self.store.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def doc(self, collection, doc_id):
        return self.store.get(collection, {}).get(doc_id)


@pytest.fixture
def db():
    return FakeFirestore()


# ============================================================================
# EMAIL
# ============================================================================


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture every message handed to Resend"""
    sent = []

    def fake_send(params):
        sent.append(params)
        return {"id": f"email_{len(sent)}"}

    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return sent


@pytest.fixture
def failing_transport(monkeypatch):
    """Resend configured but rejecting every message"""

    def fake_send(params):
        raise RuntimeError("transport unavailable")

    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(resend.Emails, "send", fake_send)


# ============================================================================
# STRIPE
# ============================================================================


class FakeStripe:
    """
    Routes Stripe API calls to canned responses.

    routes maps "METHOD /path" to a dict, a callable(request, params) or an
    httpx.Response. Every call is recorded as (method, path, params, account).
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        if request.method == "GET":
            params = dict(request.url.params)
        else:
            params = dict(parse_qsl(request.content.decode()))
        account = request.headers.get("Stripe-Account")
        self.calls.append((request.method, path, params, account))

        route = self.routes.get(f"{request.method} {path}")
        if route is None:
            return httpx.Response(404, json={"error": {"message": f"No such route: {path}"}})
        if callable(route):
            route = route(request, params)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def client(self) -> StripeClient:
        return StripeClient("sk_test_123", transport=httpx.MockTransport(self.handler))

    def called(self, method, path):
        return [call for call in self.calls if call[0] == method and call[1] == path]


@pytest.fixture
def fake_stripe():
    return FakeStripe()
