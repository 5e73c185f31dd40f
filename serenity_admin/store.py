"""
This module is the dashboard's only gateway to Cloud Firestore.

It is responsible for:
- Initializing the Firebase Admin SDK once per process from service-account
  credentials (a JSON string, a mapping from Streamlit secrets, or a file path).
- Fetching every document of a collection, optionally ordered by a field.
- Deleting a single document by ID.

All SDK errors are re-raised as `StoreError` so callers only have one failure
type to handle at the store boundary.
"""
# serenity_admin/store.py

import json
import logging
from collections.abc import Mapping

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)

USERS = "users"
ASSESSMENTS = "assessments"
AI_CHATS = "ai_chats"
JOURNAL_ENTRIES = "journal_entries"
GOALS = "goals"
COMMUNITY_DISCUSSIONS = "community_discussions"
SUPPORT_GROUPS = "support_groups"


class StoreError(Exception):
    """Raised when a read or write against the document store fails."""


class FirestoreStore:
    """Thin wrapper around a Firestore client.

    Documents are returned as `(doc_id, data)` tuples in the order the store
    yields them.
    """
    def __init__(self, client):
        self._client = client

    def _collection(self, path):
        if not path or len(path) % 2 == 0:
            raise ValueError(f"A collection path needs an odd number of segments, got {path!r}")
        return self._client.collection(*path)

    def fetch_collection(self, *path) -> list:
        """Fetches every document in a collection.

        Args:
            *path (str): Alternating collection and document IDs, e.g.
                `("users", "u1", "goals")`.

        Returns:
            list: `(doc_id, data)` tuples.
        """
        collection = self._collection(path)
        try:
            return [(snap.id, snap.to_dict() or {}) for snap in collection.stream()]
        except Exception as e:
            raise StoreError(f"Could not read {'/'.join(path)}: {e}") from e

    def fetch_ordered_collection(self, path, order_by, descending=True) -> list:
        """Fetches every document in a collection ordered by one field.

        Args:
            path (tuple): The collection path, as for `fetch_collection`.
            order_by (str): The field to order on.
            descending (bool): Newest first when ordering by a timestamp.

        Returns:
            list: `(doc_id, data)` tuples.
        """
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        collection = self._collection(tuple(path))
        try:
            query = collection.order_by(order_by, direction=direction)
            return [(snap.id, snap.to_dict() or {}) for snap in query.stream()]
        except Exception as e:
            raise StoreError(f"Could not read {'/'.join(path)} ordered by {order_by}: {e}") from e

    def delete_document(self, collection, doc_id):
        """Deletes one document from a root collection."""
        try:
            self._client.collection(collection).document(doc_id).delete()
        except Exception as e:
            raise StoreError(f"Could not delete {collection}/{doc_id}: {e}") from e
        logger.info("Deleted %s/%s", collection, doc_id)


def _certificate(raw):
    if isinstance(raw, Mapping):
        return credentials.Certificate(dict(raw))
    if raw.strip().startswith("{"):
        # Stringified JSON (e.g. a hosted secret)
        return credentials.Certificate(json.loads(raw))
    # Local path to JSON (for dev)
    return credentials.Certificate(raw)


def connect_firestore(raw_credentials) -> FirestoreStore:
    """Initializes Firebase Admin (once per process) and returns a store.

    Args:
        raw_credentials: Service-account JSON string, mapping, or file path.

    Returns:
        FirestoreStore: A store bound to the default Firebase app.

    Raises:
        ValueError: If no credentials were configured.
        RuntimeError: If the SDK could not be initialized.
    """
    if not raw_credentials:
        raise ValueError("Firebase credentials are not configured (firebase_credentials / FIREBASE_ADMIN_JSON)")

    # Detect and initialize Firebase only once
    if not firebase_admin._apps:
        try:
            firebase_admin.initialize_app(_certificate(raw_credentials))
        except Exception as e:
            raise RuntimeError("Failed to initialize Firebase Admin SDK") from e
        logger.info("Firebase Admin SDK initialized")

    return FirestoreStore(firestore.client())
