"""
This module defines the community moderation workflow.

It provides:
- `ModerationBoard`, the in-memory lists of discussions and support groups an
  admin is looking at, together with the confirm-before-delete gate.
- `CommunityService`, which loads a board from Firestore and is attached to the
  main `DashboardService` as `service.community`.

A delete only removes an item from the board after the store confirms it. A
failed delete leaves the board exactly as it was and records a notice for the
admin in `last_error`.
"""
# serenity_admin/community.py

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from serenity_admin.models import Discussion, SupportGroup
from serenity_admin.store import COMMUNITY_DISCUSSIONS, SUPPORT_GROUPS

logger = logging.getLogger(__name__)

DISCUSSION = "discussion"
GROUP = "group"

PRESENT = "present"
CONFIRMING = "confirming"
DELETING = "deleting"
ABSENT = "absent"

_COLLECTIONS = {DISCUSSION: COMMUNITY_DISCUSSIONS, GROUP: SUPPORT_GROUPS}
_LABELS = {DISCUSSION: "discussion", GROUP: "support group"}


class ModerationBoard:
    """Discussions and support groups loaded for moderation.

    Attributes:
        discussions (list[Discussion]): Newest first.
        support_groups (list[SupportGroup]): In store order.
        pending (tuple or None): The `(kind, item_id)` awaiting confirmation.
        deleting (tuple or None): The `(kind, item_id)` whose delete is in flight.
        last_error (str or None): The notice from the most recent failed delete.
    """

    def __init__(self, store, discussions: List[Discussion], support_groups: List[SupportGroup]) -> None:
        self._store = store
        self.discussions = list(discussions)
        self.support_groups = list(support_groups)
        self.pending: Optional[Tuple[str, str]] = None
        self.deleting: Optional[Tuple[str, str]] = None
        self.last_error: Optional[str] = None

    def _items(self, kind: str) -> list:
        if kind == DISCUSSION:
            return self.discussions
        if kind == GROUP:
            return self.support_groups
        raise ValueError(f"Unknown community item kind: {kind!r}")

    def get(self, kind: str, item_id: str):
        """Returns the item with `item_id`, or None if it is not on the board."""
        for item in self._items(kind):
            if item.id == item_id:
                return item
        return None

    def state_of(self, kind: str, item_id: str) -> str:
        """Reports where an item is in the delete flow."""
        if self.get(kind, item_id) is None:
            return ABSENT
        if self.deleting == (kind, item_id):
            return DELETING
        if self.pending == (kind, item_id):
            return CONFIRMING
        return PRESENT

    def request_delete(self, kind: str, item_id: str) -> None:
        """Opens the confirmation gate for one item.

        Raises:
            ValueError: If `kind` is not 'discussion' or 'group'.
            KeyError: If the item is not on the board.
        """
        if self.get(kind, item_id) is None:
            raise KeyError(f"No {_LABELS[kind]} with id {item_id!r}")
        self.pending = (kind, item_id)
        self.last_error = None

    def cancel_delete(self) -> None:
        """Closes the confirmation gate without touching the store or the lists."""
        self.pending = None

    def confirm_delete(self) -> bool:
        """Deletes the pending item from the store, then from the board.

        Returns:
            bool: True if the item was deleted, False if nothing was pending or
                  the store rejected the delete.
        """
        if self.pending is None:
            return False
        kind, item_id = self.pending
        self.pending = None
        self.deleting = (kind, item_id)
        try:
            self._store.delete_document(_COLLECTIONS[kind], item_id)
        except Exception as e:
            logger.error("Error deleting %s %s: %s", _LABELS[kind], item_id, e)
            self.last_error = f"Failed to delete {_LABELS[kind]}"
            return False
        finally:
            self.deleting = None

        items = self._items(kind)
        items[:] = [item for item in items if item.id != item_id]
        self.last_error = None
        return True

    def counts(self) -> Dict[str, int]:
        return {DISCUSSION: len(self.discussions), GROUP: len(self.support_groups)}


class CommunityService:
    """Loads community data for moderation."""

    def __init__(self, dashboard_service) -> None:
        """Initializes the CommunityService with a reference to the main DashboardService.

        Args:
            dashboard_service: An instance of the main DashboardService.
        """
        self._service = dashboard_service

    def load(self) -> ModerationBoard:
        """Reads discussions (newest first) and support groups into a new board.

        Raises:
            StoreError: If either collection cannot be read.
        """
        store = self._service.store
        discussions = [
            Discussion.from_document(doc_id, data)
            for doc_id, data in store.fetch_ordered_collection((COMMUNITY_DISCUSSIONS,), "createdAt", descending=True)
        ]
        groups = [SupportGroup.from_document(doc_id, data) for doc_id, data in store.fetch_collection(SUPPORT_GROUPS)]
        logger.info("Community data loaded: %d discussions, %d support groups", len(discussions), len(groups))
        return ModerationBoard(store, discussions, groups)

    def count(self) -> Tuple[int, int]:
        """Returns `(discussion_count, support_group_count)` for the overview."""
        store = self._service.store
        return len(store.fetch_collection(COMMUNITY_DISCUSSIONS)), len(store.fetch_collection(SUPPORT_GROUPS))
