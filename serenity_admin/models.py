"""
This module defines the record schemas for the Serenity admin dashboard.

Every entity read from Firestore is validated exactly once, when it crosses the
store boundary, through `from_document`. Each field declares a default so the
rest of the application never has to guess at missing data:

- timestamps default to `None`
- free text defaults to an empty string
- scores, counters and progress default to `0`
- flags default to `False` and lists to `[]`
- an owner's display name defaults to `"Unknown"`
"""
# serenity_admin/models.py

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from serenity_admin.formatting import to_datetime

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown"


def _coerce_timestamp(value):
    """Turns a serialized Firestore timestamp mapping into a datetime.

    Raises:
        ValueError: If the mapping does not hold a usable timestamp, so the
            field falls back to its default.
    """
    if isinstance(value, dict):
        timestamp = to_datetime(value)
        if timestamp is None:
            raise ValueError(f"Unreadable timestamp: {value!r}")
        return timestamp
    return value


class StoreRecord(BaseModel):
    """Base class for every document-backed record."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""

    @model_validator(mode="before")
    @classmethod
    def drop_missing(cls, data):
        # A null in the store means "use the default".
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @classmethod
    def from_document(cls, doc_id: str, data: dict, **extra):
        """Builds a record from raw document data.

        Fields that fail validation are logged and replaced by their defaults
        instead of rejecting the whole document.

        Args:
            doc_id (str): The Firestore document ID.
            data (dict): The raw document fields.
            **extra: Values that override the document (e.g. owner annotation).

        Returns:
            StoreRecord: A validated instance of the calling class.
        """
        payload = dict(data or {})
        payload.update(extra)
        payload["id"] = doc_id
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            bad_fields = {err["loc"][0] for err in exc.errors() if err.get("loc")}
            logger.warning(
                "Document %s (%s) has invalid fields %s; using defaults.",
                doc_id, cls.__name__, sorted(str(f) for f in bad_fields)
            )
            for field in bad_fields:
                payload.pop(field, None)
            for name, info in cls.model_fields.items():
                if info.alias in bad_fields:
                    payload.pop(name, None)
            return cls.model_validate(payload)


class User(StoreRecord):
    """A registered end user of the wellness application (root collection `users`)."""

    name: str = ""
    email: str = ""
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    wellness_score: float = 0
    streak: int = 0
    email_verified: bool = Field(default=False, alias="emailVerified")
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")

    parse_timestamps = field_validator("created_at", "last_login", mode="before")(_coerce_timestamp)

    @field_validator("wellness_score")
    @classmethod
    def clamp_score(cls, value):
        return min(100, max(0, value))

    @field_validator("streak")
    @classmethod
    def non_negative_streak(cls, value):
        return max(0, value)

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_USER


class OwnedRecord(StoreRecord):
    """A record stored in a user's subcollection, annotated with its owner at load time."""

    user_id: str = Field(default="", alias="userId")
    user_name: str = Field(default=UNKNOWN_USER, alias="userName")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    parse_created = field_validator("created_at", mode="before")(_coerce_timestamp)


class Assessment(OwnedRecord):
    type: str = ""
    score: float = 0
    interpretation: str = ""
    date: Optional[datetime] = None

    parse_date = field_validator("date", mode="before")(_coerce_timestamp)

    @property
    def when(self):
        return self.date or self.created_at


class AIChatTurn(OwnedRecord):
    content: str = ""
    role: str = "user"
    emotion: Optional[str] = None
    timestamp: Optional[datetime] = None

    parse_timestamp = field_validator("timestamp", mode="before")(_coerce_timestamp)

    @property
    def when(self):
        return self.timestamp or self.created_at


class JournalEntry(OwnedRecord):
    title: str = ""
    mood: str = ""


class Goal(OwnedRecord):
    title: str = ""
    category: str = ""
    progress: float = 0

    @field_validator("progress")
    @classmethod
    def clamp_progress(cls, value):
        return min(100, max(0, value))


class Discussion(StoreRecord):
    """A community discussion thread (root collection `community_discussions`)."""

    title: str = ""
    description: str = ""
    category: str = ""
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    message_count: int = Field(default=0, alias="messageCount")

    parse_created = field_validator("created_at", mode="before")(_coerce_timestamp)


class SupportGroup(StoreRecord):
    """A community support group (root collection `support_groups`)."""

    name: str = ""
    description: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    member_count: int = Field(default=0, alias="memberCount")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    is_anonymous: bool = Field(default=False, alias="isAnonymous")

    parse_created = field_validator("created_at", mode="before")(_coerce_timestamp)


class AdminPrincipal(BaseModel):
    """The signed-in identity, as reported by the identity provider.

    Attributes:
        uid (str): The provider's user ID (may be empty for federated logins).
        email (str): The principal's email, used for the admin allow-list check.
        display_name (str): A human-readable name for the sidebar.
        provider (str): 'password' or 'google'.
    """

    uid: str = ""
    email: str = ""
    display_name: str = ""
    provider: str = "password"
