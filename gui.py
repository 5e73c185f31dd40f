"""
This module defines the graphical user interface (GUI) for the Serenity admin dashboard using Streamlit.

It includes functions for rendering the sign-in page and the four admin pages:
the dashboard overview, user management, community moderation and analytics.

The main entry point for the UI is `show_main_app`, which renders the sidebar
navigation and routes to the selected page. Data loaded from Firestore is kept
in `st.session_state` for the rest of the browser session and is only fetched
again when the admin presses a page's "Refresh" button or signs in again.
"""
# serenity_admin/gui.py

import streamlit as st
import pandas as pd

from serenity_admin.analytics import AnalyticsData
from serenity_admin.auth import ACCESS_DENIED_MESSAGE, DENIED
from serenity_admin.community import CONFIRMING, DISCUSSION, GROUP
from serenity_admin.formatting import format_date, format_date_time
from serenity_admin.identity import SignInError
from serenity_admin.stats import (
    DashboardStats,
    active_user_count,
    average_display,
    filter_by_verification,
    partition_by_verification,
    recent_users,
    search_users,
    total_members,
    wellness_label,
)
from serenity_admin.store import StoreError

# Session state keys for data cached between reruns.
OVERVIEW_KEY = 'overview_data'
ANALYTICS_KEY = 'analytics_data'
BOARD_KEY = 'moderation_board'
CACHE_KEYS = (OVERVIEW_KEY, ANALYTICS_KEY, BOARD_KEY)

PAGES = ["Dashboard", "User Management", "Community", "Analytics"]
VERIFICATION_OPTIONS = {"all": "All Users", "verified": "Verified Only", "unverified": "Unverified Only"}


def clear_cached_data(_principal=None):
    """Drops every cached dataset so the next page render reloads from the store.

    Registered as an auth-state observer, so it also runs on sign-in and sign-out.
    """
    for key in CACHE_KEYS:
        st.session_state.pop(key, None)


def _refresh_button(key, label="↻ Refresh"):
    """Renders a refresh button that invalidates one cached dataset."""
    if st.button(label, key=f"refresh_{key}"):
        st.session_state.pop(key, None)
        st.rerun()


def _load_overview(service):
    """Returns `(users, stats)`, loading them once per session."""
    if OVERVIEW_KEY not in st.session_state:
        try:
            with st.spinner("Loading dashboard..."):
                st.session_state[OVERVIEW_KEY] = service.load_overview()
        except StoreError:
            st.error("Error loading dashboard data. Press Refresh to try again.")
            return [], DashboardStats()
    return st.session_state[OVERVIEW_KEY]


def _load_analytics(service):
    if ANALYTICS_KEY not in st.session_state:
        with st.spinner("Loading analytics..."):
            data = service.load_analytics()
        if data is None:
            st.error("Error loading analytics data. Press Refresh to try again.")
            return AnalyticsData.empty()
        st.session_state[ANALYTICS_KEY] = data
    return st.session_state[ANALYTICS_KEY]


def _load_board(service):
    if BOARD_KEY not in st.session_state:
        try:
            with st.spinner("Loading community..."):
                st.session_state[BOARD_KEY] = service.community.load()
        except StoreError:
            st.error("Error loading community data. Press Refresh to try again.")
            return None
    return st.session_state[BOARD_KEY]


def _users_frame(users):
    """Builds the table shown on the dashboard and user management pages."""
    return pd.DataFrame(
        [
            {
                "Name": user.display_name,
                "Email": user.email or "N/A",
                "Email Status": "Verified" if user.email_verified else "Unverified",
                "Wellness Score": user.wellness_score,
                "Wellness": wellness_label(user.wellness_score),
                "Streak": user.streak,
                "Joined Date": format_date(user.created_at),
            }
            for user in users
        ],
        columns=["Name", "Email", "Email Status", "Wellness Score", "Wellness", "Streak", "Joined Date"],
    )


# Authentication Pages
def show_login_form(auth_service, google_enabled=False):
    """Displays the admin sign-in page and handles authentication.

    Args:
        auth_service (AdminAuthService): The session's authentication gate.
        google_enabled (bool): Whether the Google (OIDC) provider is configured.
    """
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>Serenity Admin</h1>", unsafe_allow_html=True)
        st.markdown("<p style='text-align: center;'>Secure admin dashboard access</p>", unsafe_allow_html=True)

        # Errors raised before a rerun (e.g. a rejected Google account) are shown once.
        pending_error = st.session_state.pop('auth_error', None)
        if pending_error:
            st.error(pending_error)

        if google_enabled and getattr(st.user, 'is_logged_in', False):
            _complete_federated_login(auth_service)

        with st.form("login_form"):
            email = st.text_input("Email Address", placeholder="admin@example.com")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In", use_container_width=True, type="primary")

            if submitted:
                if not email or not password:
                    st.error("Email and password are required.")
                else:
                    with st.spinner("Signing in..."):
                        try:
                            result = auth_service.login(email, password)
                        except SignInError as e:
                            st.error(str(e))
                        else:
                            if result == DENIED:
                                st.error(ACCESS_DENIED_MESSAGE)
                            else:
                                st.rerun()

        if google_enabled:
            st.markdown("<p style='text-align: center;'>Or continue with</p>", unsafe_allow_html=True)
            if st.button("Sign in with Google", use_container_width=True):
                st.login("google")

        st.info("Only authorized email addresses can access this dashboard. "
                "Contact your system administrator if you need access.")


def _complete_federated_login(auth_service):
    """Admits (or rejects) the principal returned by Streamlit's OIDC login."""
    try:
        result = auth_service.login_federated(st.user.get('email'), st.user.get('name') or "")
    except SignInError as e:
        st.session_state.auth_error = str(e)
        st.logout()
        return
    if result == DENIED:
        st.session_state.auth_error = ACCESS_DENIED_MESSAGE
        st.logout()
        return
    st.rerun()


# Main Application UI
def show_main_app(service, auth_service):
    """
    The main application router shown to a signed-in admin.

    Renders the sidebar navigation and the selected page.

    Args:
        service (DashboardService): The main application service instance.
        auth_service (AdminAuthService): The session's authentication gate.
    """
    admin = auth_service.current_admin

    with st.sidebar:
        st.markdown("## Serenity Admin")
        st.caption(admin.display_name or admin.email if admin else "")
        page = st.radio("Navigate", PAGES, key="page", label_visibility="collapsed")
        st.divider()
        if st.button("Sign Out", key="sign_out_btn", use_container_width=True):
            provider = admin.provider if admin else None
            auth_service.logout()
            if provider == 'google':
                st.logout()
            st.rerun()

    if page == "Dashboard":
        _render_dashboard_page(service)
    elif page == "User Management":
        _render_user_management_page(service)
    elif page == "Community":
        _render_community_page(service)
    elif page == "Analytics":
        _render_analytics_page(service)


def _render_dashboard_page(service):
    """Renders the overview: headline stats and the searchable recent-users table.

    Args:
        service: The main application service instance.
    """
    st.markdown("<h2>Dashboard</h2>", unsafe_allow_html=True)
    _refresh_button(OVERVIEW_KEY)
    users, stats = _load_overview(service)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Registered Users", stats.total_users)
    col2.metric("Active Users", stats.active_users)
    col3.metric("Discussions", stats.total_discussions)
    col4.metric("Support Groups", stats.total_support_groups)

    st.divider()
    st.subheader("Recent Users")
    query = st.text_input("Search users...", key="dashboard_search")
    filtered = search_users(recent_users(users), query)
    if not filtered:
        st.info("No users match your search.")
    else:
        st.dataframe(_users_frame(filtered), use_container_width=True, hide_index=True)


def _display_user_details(user):
    """Renders a read-only view of one user's profile."""
    st.write(f"**Name:** {user.display_name}")
    st.write(f"**Email:** {user.email or 'N/A'}")
    st.write(f"**Email Verified:** {'Yes' if user.email_verified else 'No'}")
    st.write(f"**Wellness Score:** {user.wellness_score} ({wellness_label(user.wellness_score)})")
    st.write(f"**Streak:** {user.streak} days")
    st.write(f"**Joined:** {format_date_time(user.created_at)}")
    st.write(f"**Last Login:** {format_date_time(user.last_login)}")
    st.caption(f"User ID: {user.id}")


def _render_user_management_page(service):
    """Renders the user management page with search, filters and CSV export.

    Args:
        service: The main application service instance.
    """
    st.markdown("<h2>User Management</h2>", unsafe_allow_html=True)
    _refresh_button(OVERVIEW_KEY)
    users, _ = _load_overview(service)
    verified, unverified = partition_by_verification(users)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Users", len(users))
    col2.metric("Verified", len(verified))
    col3.metric("Unverified", len(unverified))
    col4.metric("Active", active_user_count(users))

    search_col, filter_col = st.columns([3, 1])
    with search_col:
        query = st.text_input("Search by name or email...", key="users_search")
    with filter_col:
        status = st.selectbox(
            "Email status", list(VERIFICATION_OPTIONS),
            format_func=lambda value: VERIFICATION_OPTIONS[value], key="users_filter"
        )
    filtered = filter_by_verification(search_users(users, query), status)

    st.download_button(
        "Export CSV", service.export_users_csv(filtered),
        service.export_filename(), "text/csv", disabled=not filtered
    )

    if not filtered:
        st.info("No users found.")
        return
    st.dataframe(_users_frame(filtered), use_container_width=True, hide_index=True)

    user_ids = [user.id for user in filtered]
    users_by_id = {user.id: user for user in filtered}
    selected = st.selectbox(
        "View user details", [None] + user_ids,
        format_func=lambda uid: "Select a user..." if uid is None else f"{users_by_id[uid].display_name} ({users_by_id[uid].email or 'no email'})",
        key="users_detail"
    )
    if selected:
        with st.expander("User Details", expanded=True):
            _display_user_details(users_by_id[selected])


def _render_item_details(item):
    """Shows the full stored record for a discussion or support group."""
    with st.expander("Details"):
        st.json(item.model_dump(mode="json", by_alias=True))


def _render_delete_controls(board, kind, item_id, label):
    """Renders the delete button and, when requested, the confirmation gate for one item."""
    if board.state_of(kind, item_id) == CONFIRMING:
        st.warning(f"Are you sure you want to delete this {label}?")
        yes_col, cancel_col = st.columns(2)
        if yes_col.button("Yes, delete", key=f"confirm_{kind}_{item_id}", type="primary"):
            if board.confirm_delete():
                # Overview counts include community items.
                st.session_state.pop(OVERVIEW_KEY, None)
                st.session_state.moderation_notice = ('success', f"{label.capitalize()} deleted successfully")
            else:
                st.session_state.moderation_notice = ('error', board.last_error)
            st.rerun()
        if cancel_col.button("Cancel", key=f"cancel_{kind}_{item_id}"):
            board.cancel_delete()
            st.rerun()
    elif st.button("Delete", key=f"delete_{kind}_{item_id}"):
        board.request_delete(kind, item_id)
        st.rerun()


def _render_community_page(service):
    """Renders discussions and support groups with moderation actions.

    Args:
        service: The main application service instance.
    """
    st.markdown("<h2>Community Moderation</h2>", unsafe_allow_html=True)
    _refresh_button(BOARD_KEY)
    board = _load_board(service)
    if board is None:
        return

    # Show the outcome of the last delete exactly once.
    notice = st.session_state.pop('moderation_notice', None)
    if notice:
        kind, message = notice
        if kind == 'success':
            st.success(message)
        else:
            st.error(message)

    counts = board.counts()
    col1, col2, col3 = st.columns(3)
    col1.metric("Discussions", counts[DISCUSSION])
    col2.metric("Support Groups", counts[GROUP])
    col3.metric("Total Members", total_members(board.support_groups))

    discussions_tab, groups_tab = st.tabs([
        f"Discussions ({counts[DISCUSSION]})",
        f"Support Groups ({counts[GROUP]})",
    ])

    with discussions_tab:
        if not board.discussions:
            st.info("No discussions yet.")
        for discussion in list(board.discussions):
            with st.container(border=True):
                st.markdown(f"### {discussion.title or 'Untitled discussion'}")
                st.write(discussion.description or "_No description._")
                st.caption(
                    f"{discussion.category or 'Uncategorized'} · {format_date_time(discussion.created_at)}"
                    f" · {discussion.message_count} messages"
                )
                _render_item_details(discussion)
                _render_delete_controls(board, DISCUSSION, discussion.id, "discussion")

    with groups_tab:
        if not board.support_groups:
            st.info("No support groups yet.")
        for group in list(board.support_groups):
            with st.container(border=True):
                anonymous = " 🔒 Anonymous" if group.is_anonymous else ""
                st.markdown(f"### {group.name or 'Unnamed group'}{anonymous}")
                st.write(group.description or "_No description._")
                st.caption(
                    f"{group.category or 'Uncategorized'} · {group.member_count} members"
                    f" · {format_date_time(group.created_at)}"
                )
                if group.tags:
                    st.write(" ".join(f"`#{tag}`" for tag in group.tags))
                _render_item_details(group)
                _render_delete_controls(board, GROUP, group.id, "support group")


def _render_chat_turns(turns):
    """Displays AI chat turns as chat bubbles, newest data first as loaded."""
    if not turns:
        st.info("No AI conversations found.")
        return
    for turn in turns:
        is_user = turn.role == 'user'
        with st.chat_message("user" if is_user else "assistant", avatar="🙂" if is_user else "🤖"):
            st.markdown(f"**{turn.user_name}** · {'User' if is_user else 'AI Assistant'}")
            st.write(turn.content)
            if turn.emotion:
                st.caption(f"Emotion: {turn.emotion}")
            st.caption(format_date_time(turn.when))


def _render_analytics_page(service):
    """Renders aggregated assessments, AI chats, journals and goals.

    Args:
        service: The main application service instance.
    """
    st.markdown("<h2>Analytics & Insights</h2>", unsafe_allow_html=True)
    st.caption("Comprehensive data from assessments, AI chats, journals, and goals")
    _refresh_button(ANALYTICS_KEY)
    data = _load_analytics(service)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Assessments", len(data.assessments))
    col1.caption(f"Avg Score: {average_display(data.assessments, 'score')}")
    col2.metric("AI Conversations", len(data.ai_chats))
    col3.metric("Journal Entries", len(data.journal_entries))
    col4.metric("Active Goals", len(data.goals))
    col4.caption(f"Avg Progress: {average_display(data.goals, 'progress')}%")

    assessments_tab, chats_tab, journals_tab, goals_tab = st.tabs(["Assessments", "AI Chats", "Journals", "Goals"])

    with assessments_tab:
        st.dataframe(pd.DataFrame(
            [
                {
                    "User": a.user_name,
                    "Type": a.type,
                    "Score": a.score,
                    "Result": a.interpretation or "N/A",
                    "Date": format_date_time(a.when),
                }
                for a in data.assessments
            ],
            columns=["User", "Type", "Score", "Result", "Date"],
        ), use_container_width=True, hide_index=True)

    with chats_tab:
        _render_chat_turns(data.ai_chats)

    with journals_tab:
        st.dataframe(pd.DataFrame(
            [
                {"User": j.user_name, "Title": j.title, "Mood": j.mood, "Date": format_date_time(j.created_at)}
                for j in data.journal_entries
            ],
            columns=["User", "Title", "Mood", "Date"],
        ), use_container_width=True, hide_index=True)

    with goals_tab:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "User": g.user_name,
                        "Goal": g.title,
                        "Category": g.category,
                        "Progress": g.progress,
                        "Created": format_date_time(g.created_at),
                    }
                    for g in data.goals
                ],
                columns=["User", "Goal", "Category", "Progress", "Created"],
            ),
            column_config={"Progress": st.column_config.ProgressColumn("Progress", min_value=0, max_value=100, format="%d%%")},
            use_container_width=True,
            hide_index=True,
        )
