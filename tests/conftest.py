"""
Pytest configuration file for the Serenity admin test suite.

This file defines shared fixtures and in-memory stand-ins used across the test files.
It includes:
- `FakeStore`, an in-memory document store with the same methods as
  `FirestoreStore`, which can be told to fail reads of specific paths or deletes.
- `FakeSession`, a stand-in for `requests.Session` that replays canned
  Firebase Auth REST responses.
- Fixtures for a configuration, a populated store, the `DashboardService` and
  the `AdminAuthService`, so every test starts from a clean, isolated state.
"""
import threading
import time
from datetime import datetime, timezone

import pytest
import requests

from serenity_admin.auth import AdminAuthService
from serenity_admin.config import DashboardConfig
from serenity_admin.dashboard import DashboardService
from serenity_admin.formatting import to_datetime
from serenity_admin.identity import FirebaseIdentity
from serenity_admin.store import StoreError

ADMIN_EMAIL = "admin@serenity.app"
ADMIN_PASSWORD = "S3cure!Pass"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class FakeStore:
    """An in-memory document store keyed by collection path tuples."""

    def __init__(self, collections=None):
        self.collections = {tuple(path): list(docs) for path, docs in (collections or {}).items()}
        self.failing = set()
        self.fail_deletes = False
        self.deleted = []
        self.reads = []
        self._lock = threading.Lock()

    def fetch_collection(self, *path):
        with self._lock:
            self.reads.append(path)
        if path in self.failing:
            raise StoreError(f"Could not read {'/'.join(path)}: permission denied")
        return list(self.collections.get(path, []))

    def fetch_ordered_collection(self, path, order_by, descending=True):
        # Like Firestore, an ordered query skips documents without the field.
        documents = [doc for doc in self.fetch_collection(*tuple(path)) if doc[1].get(order_by) is not None]
        return sorted(
            documents,
            key=lambda doc: to_datetime(doc[1].get(order_by)) or _EPOCH,
            reverse=descending,
        )

    def delete_document(self, collection, doc_id):
        if self.fail_deletes:
            raise StoreError(f"Could not delete {collection}/{doc_id}: permission denied")
        self.deleted.append((collection, doc_id))
        path = (collection,)
        self.collections[path] = [doc for doc in self.collections.get(path, []) if doc[0] != doc_id]


class ConcurrencyTrackingStore(FakeStore):
    """A `FakeStore` whose reads take a moment and record the peak number in flight."""

    def __init__(self, collections=None, delay=0.02):
        super().__init__(collections)
        self.delay = delay
        self.in_flight = 0
        self.peak = 0

    def fetch_collection(self, *path):
        with self._lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self.delay)
            return super().fetch_collection(*path)
        finally:
            with self._lock:
                self.in_flight -= 1


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class FakeSession:
    """Replays one response (or raises one exception) for every POST."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def ok_sign_in(email, uid="uid-1", display_name=""):
    """Builds a successful signInWithPassword response for `email`."""
    return FakeResponse(200, {"localId": uid, "email": email, "displayName": display_name, "idToken": "token"})


def failed_sign_in(code):
    """Builds a rejected signInWithPassword response carrying a Firebase error code."""
    return FakeResponse(400, {"error": {"code": 400, "message": code}})


def unreachable():
    return requests.ConnectionError("connection refused")


def sample_collections():
    """Two users with a spread of subcollection data plus community content."""
    return {
        ("users",): [
            ("u1", {
                "name": "Alice Smith", "email": "alice@example.com", "wellness_score": 80,
                "streak": 3, "emailVerified": True, "createdAt": "2024-01-05T10:00:00Z",
            }),
            ("u2", {
                "name": "Bob Jones", "email": "bob@example.com", "wellness_score": 60,
                "streak": 0, "emailVerified": False, "createdAt": "2024-02-10T09:30:00Z",
            }),
        ],
        ("users", "u1", "assessments"): [
            ("a1", {"type": "PHQ-9", "score": 80, "interpretation": "Mild", "date": "2024-03-01T12:00:00Z"}),
            ("a2", {"type": "GAD-7", "score": 100, "interpretation": "Minimal"}),
        ],
        ("users", "u2", "assessments"): [
            ("a3", {"type": "PHQ-9", "score": 60}),
        ],
        ("users", "u1", "ai_chats"): [
            ("c1", {"content": "I feel calmer today", "role": "user", "emotion": "calm"}),
            ("c2", {"content": "That's great to hear!", "role": "assistant"}),
        ],
        ("users", "u2", "journal_entries"): [
            ("j1", {"title": "Morning pages", "mood": "hopeful"}),
        ],
        ("users", "u1", "goals"): [
            ("g1", {"title": "Meditate daily", "category": "mindfulness", "progress": 40}),
            ("g2", {"title": "Walk 5k", "category": "fitness", "progress": 80}),
        ],
        ("community_discussions",): [
            ("d1", {"title": "Coping with stress", "category": "stress", "createdAt": "2024-03-02T08:00:00Z",
                    "messageCount": 4}),
            ("d2", {"title": "Sleep tips", "category": "sleep", "createdAt": "2024-03-05T08:00:00Z"}),
        ],
        ("support_groups",): [
            ("s1", {"name": "Anxiety Circle", "memberCount": 12, "tags": ["anxiety"], "isAnonymous": True}),
            ("s2", {"name": "New Parents", "memberCount": 8}),
        ],
    }


@pytest.fixture
def config():
    """Provides a configuration whose allow-list contains only `ADMIN_EMAIL`."""
    return DashboardConfig(admin_emails=[ADMIN_EMAIL], firebase_web_api_key="test-key", max_workers=4)


@pytest.fixture
def store():
    return FakeStore(sample_collections())


@pytest.fixture
def service(store, config):
    """Provides a `DashboardService` backed by the populated in-memory store."""
    return DashboardService(store, config)


@pytest.fixture
def http_session():
    return FakeSession(response=ok_sign_in(ADMIN_EMAIL, display_name="Site Admin"))


@pytest.fixture
def identity(http_session):
    return FirebaseIdentity("test-key", session=http_session)


@pytest.fixture
def auth_service(identity, config):
    """
    Provides an `AdminAuthService` wired to a fake Firebase Auth endpoint.

    By default every password sign-in succeeds as `ADMIN_EMAIL`; tests swap
    `http_session.response` to simulate other accounts or failures.
    """
    return AdminAuthService(identity, config)
