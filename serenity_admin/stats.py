"""
Summary statistics and filters derived from loaded records.

These are plain functions over lists of models. They are recomputed on every
Streamlit rerun and never mutate the lists passed in.
"""
# serenity_admin/stats.py

import datetime

VERIFICATION_FILTERS = ("all", "verified", "unverified")


class DashboardStats:
    """Headline numbers for the dashboard overview."""

    def __init__(self, total_users=0, active_users=0, total_discussions=0, total_support_groups=0):
        self.total_users = total_users
        self.active_users = active_users
        self.total_discussions = total_discussions
        self.total_support_groups = total_support_groups

    def __eq__(self, other):
        if not isinstance(other, DashboardStats):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        return f"DashboardStats({vars(self)})"


def mean_of(records, field: str) -> float:
    """Returns the arithmetic mean of a numeric attribute.

    Args:
        records (list): Records exposing `field` as an attribute.
        field (str): The attribute name, e.g. 'score' or 'progress'.

    Returns:
        float: The mean, or 0.0 when there are no records.
    """
    if not records:
        return 0.0
    total = sum((getattr(record, field, 0) or 0) for record in records)
    return total / len(records)


def average_display(records, field: str) -> str:
    """Returns the mean of `field` rendered to one decimal place, e.g. "80.0"."""
    return f"{mean_of(records, field):.1f}"


def active_user_count(users) -> int:
    """Counts users with a running streak."""
    return sum(1 for user in users if (user.streak or 0) > 0)


def search_users(users, query) -> list:
    """Filters users whose name or email contains `query` (case-insensitive).

    Args:
        users (list[User]): The users to search.
        query (str): The search term. A blank query matches everyone.

    Returns:
        list[User]: A new list with the matching users in their original order.
    """
    term = (query or "").strip().lower()
    if not term:
        return list(users)

    def user_matches(user):
        return term in (user.name or "").lower() or term in (user.email or "").lower()

    return [user for user in users if user_matches(user)]


def partition_by_verification(users):
    """Splits users into `(verified, unverified)` lists."""
    verified, unverified = [], []
    for user in users:
        (verified if user.email_verified else unverified).append(user)
    return verified, unverified


def filter_by_verification(users, status: str) -> list:
    """Keeps users matching a verification filter ('all', 'verified' or 'unverified')."""
    if status not in VERIFICATION_FILTERS:
        raise ValueError(f"Unknown verification filter: {status!r}")
    if status == "all":
        return list(users)
    verified, unverified = partition_by_verification(users)
    return verified if status == "verified" else unverified


def total_members(groups) -> int:
    """Sums member counts across support groups."""
    return sum((group.member_count or 0) for group in groups)


def wellness_label(score) -> str:
    """Buckets a 0-100 wellness score into a label for the user tables."""
    score = score or 0
    if score > 70:
        return "Good"
    if score > 40:
        return "Moderate"
    return "Needs Attention"


def dashboard_stats(users, discussion_count: int, group_count: int) -> DashboardStats:
    return DashboardStats(
        total_users=len(users),
        active_users=active_user_count(users),
        total_discussions=discussion_count,
        total_support_groups=group_count,
    )


def recent_users(users) -> list:
    """Sorts users newest first; users without a join date go last."""
    def sort_key(user):
        created = user.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=datetime.timezone.utc)
        return created

    dated = sorted((u for u in users if u.created_at is not None), key=sort_key, reverse=True)
    undated = [u for u in users if u.created_at is None]
    return dated + undated
