"""
This module provides the core service for the Serenity admin dashboard.

It defines the `DashboardService` class, which is responsible for:
- Holding the document store and the dashboard configuration.
- Loading users and the overview statistics.
- Running the analytics aggregation.
- Exposing community moderation through `service.community`.
- Building the CSV export of users.
"""
# serenity_admin/dashboard.py

import datetime
import logging

import pandas as pd

from serenity_admin.analytics import AnalyticsLoader
from serenity_admin.community import CommunityService
from serenity_admin.formatting import format_date
from serenity_admin.models import User
from serenity_admin.stats import dashboard_stats, recent_users
from serenity_admin.store import USERS, StoreError

logger = logging.getLogger(__name__)

CSV_HEADERS = ['Name', 'Email', 'Wellness Score', 'Streak', 'Email Verified', 'Joined Date']


def _plain_number(value):
    """Drops a trailing .0 so whole scores export as integers."""
    value = value or 0
    return int(value) if float(value).is_integer() else value


class DashboardService:
    """Reads dashboard data from the store on behalf of the Streamlit pages."""

    def __init__(self, store, config):
        """Initializes the service and its sub-services.

        Args:
            store: A `FirestoreStore` (or any object with the same methods).
            config (DashboardConfig): The dashboard configuration.
        """
        self.store = store
        self.config = config
        self.analytics = AnalyticsLoader(
            store,
            max_workers=config.max_workers,
            journal_fallback=config.journal_fallback_collection,
        )
        self.community = CommunityService(self)

    def load_users(self) -> list:
        """Loads every user, newest first, with undated users last.

        Users are sorted in memory; a store-side ordering would skip
        documents that lack `createdAt`.

        Returns:
            list[User]: The validated users.

        Raises:
            StoreError: If the `users` collection cannot be read.
        """
        documents = self.store.fetch_collection(USERS)
        return recent_users([User.from_document(doc_id, data) for doc_id, data in documents])

    def load_overview(self):
        """Loads users and the headline statistics for the dashboard page.

        Returns:
            tuple: `(users, DashboardStats)`.

        Raises:
            StoreError: If any of the root collections cannot be read.
        """
        users = self.load_users()
        discussion_count, group_count = self.community.count()
        return users, dashboard_stats(users, discussion_count, group_count)

    def load_analytics(self):
        """Runs the analytics aggregation.

        Returns:
            AnalyticsData or None: The combined lists, or None if the users
                                   collection could not be read.
        """
        try:
            return self.analytics.load()
        except StoreError as e:
            logger.error("Error loading analytics data: %s", e)
            return None

    def export_users_csv(self, users) -> bytes:
        """Builds the user export as CSV bytes.

        Args:
            users (list[User]): The users to export, usually the filtered view.

        Returns:
            bytes: UTF-8 encoded CSV with a header row.
        """
        rows = [
            {
                'Name': user.name or 'N/A',
                'Email': user.email or 'N/A',
                'Wellness Score': _plain_number(user.wellness_score),
                'Streak': user.streak or 0,
                'Email Verified': 'Yes' if user.email_verified else 'No',
                'Joined Date': format_date(user.created_at),
            }
            for user in users
        ]
        users_df = pd.DataFrame(rows, columns=CSV_HEADERS)
        return users_df.to_csv(index=False).encode('utf-8')

    @staticmethod
    def export_filename(today=None) -> str:
        today = today or datetime.date.today()
        return f"users_export_{today.isoformat()}.csv"
