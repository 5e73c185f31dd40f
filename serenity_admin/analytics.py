"""
This module aggregates analytics data from every user's Firestore subcollections.

The loader reads the `users` collection and then, for each user, fetches four
subcollections (assessments, AI chats, journal entries and goals). Each
(user, subcollection) fetch runs as its own task on a bounded thread pool and
is isolated from the others: a failure is logged and counted as zero records.
Results are stitched back together in user order, so the combined lists never
depend on which task finished first.
"""
# serenity_admin/analytics.py

import logging
from concurrent.futures import ThreadPoolExecutor

from serenity_admin.config import DEFAULT_MAX_WORKERS, JOURNAL_FALLBACK_COLLECTION
from serenity_admin.models import UNKNOWN_USER, AIChatTurn, Assessment, Goal, JournalEntry, User
from serenity_admin.store import AI_CHATS, ASSESSMENTS, GOALS, JOURNAL_ENTRIES, USERS

logger = logging.getLogger(__name__)

# Subcollection name -> record type, in the order they are reported.
SUBCOLLECTIONS = (
    (ASSESSMENTS, Assessment),
    (AI_CHATS, AIChatTurn),
    (JOURNAL_ENTRIES, JournalEntry),
    (GOALS, Goal),
)


class AnalyticsData:
    """The four combined record lists produced by one load.

    Attributes:
        assessments (list[Assessment]): All users' assessments.
        ai_chats (list[AIChatTurn]): All users' AI chat turns.
        journal_entries (list[JournalEntry]): All users' journal entries.
        goals (list[Goal]): All users' goals.
    """
    def __init__(self, assessments=None, ai_chats=None, journal_entries=None, goals=None):
        self.assessments = list(assessments or [])
        self.ai_chats = list(ai_chats or [])
        self.journal_entries = list(journal_entries or [])
        self.goals = list(goals or [])

    @classmethod
    def empty(cls):
        return cls()

    def counts(self) -> dict:
        return {
            ASSESSMENTS: len(self.assessments),
            AI_CHATS: len(self.ai_chats),
            JOURNAL_ENTRIES: len(self.journal_entries),
            GOALS: len(self.goals),
        }


class AnalyticsLoader:
    """Fans out across user subcollections with bounded concurrency."""

    def __init__(self, store, max_workers=DEFAULT_MAX_WORKERS, journal_fallback=JOURNAL_FALLBACK_COLLECTION):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.store = store
        self.max_workers = max_workers
        self.journal_fallback = journal_fallback

    def _fetch_owned(self, user, collection, record_type) -> list:
        """Fetches one user's subcollection; never raises.

        Args:
            user (User): The owning user.
            collection (str): The subcollection name.
            record_type (type): The model used to validate each document.

        Returns:
            list: Validated records annotated with the owner's ID and name.
        """
        try:
            documents = self.store.fetch_collection(USERS, user.id, collection)
            # Compatibility shim for users whose journals live under the older collection name.
            if not documents and collection == JOURNAL_ENTRIES and self.journal_fallback:
                documents = self.store.fetch_collection(USERS, user.id, self.journal_fallback)
            owner_name = user.name or UNKNOWN_USER
            return [
                record_type.from_document(doc_id, data, userId=user.id, userName=owner_name)
                for doc_id, data in documents
            ]
        except Exception:
            logger.warning("Error loading %s for user %s", collection, user.id, exc_info=True)
            return []

    def load(self) -> AnalyticsData:
        """Loads and flattens every user's subcollections.

        Returns:
            AnalyticsData: Combined lists ordered by user, then by store order.

        Raises:
            StoreError: If the root `users` collection cannot be read.
        """
        logger.info("Loading analytics data from user subcollections...")
        users = [User.from_document(doc_id, data) for doc_id, data in self.store.fetch_collection(USERS)]
        logger.info("Found users: %d", len(users))

        combined = {name: [] for name, _ in SUBCOLLECTIONS}
        if users:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="analytics") as pool:
                futures = [
                    (name, pool.submit(self._fetch_owned, user, name, record_type))
                    for user in users
                    for name, record_type in SUBCOLLECTIONS
                ]
                # Collect in submission order to keep user-iteration order.
                for name, future in futures:
                    combined[name].extend(future.result())

        data = AnalyticsData(
            assessments=combined[ASSESSMENTS],
            ai_chats=combined[AI_CHATS],
            journal_entries=combined[JOURNAL_ENTRIES],
            goals=combined[GOALS],
        )
        for name, count in data.counts().items():
            logger.info("%s loaded: %d", name, count)
        return data
