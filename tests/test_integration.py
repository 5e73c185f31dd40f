"""
Integration tests for the Serenity admin dashboard.

These tests verify how the `DashboardService`, the `AnalyticsLoader` and the
`CommunityService` work together against an in-memory store: fan-out across
user subcollections, per-task failure isolation, the journal collection
fallback and root-collection failures.
"""
import pytest

from conftest import ConcurrencyTrackingStore, FakeStore, sample_collections
from serenity_admin.analytics import AnalyticsLoader
from serenity_admin.stats import DashboardStats
from serenity_admin.store import StoreError


def _ids(records):
    return [record.id for record in records]


def test_analytics_flattens_subcollections_in_user_order(service):
    data = service.load_analytics()
    assert _ids(data.assessments) == ["a1", "a2", "a3"]
    assert _ids(data.ai_chats) == ["c1", "c2"]
    assert _ids(data.journal_entries) == ["j1"]
    assert _ids(data.goals) == ["g1", "g2"]
    assert data.counts() == {"assessments": 3, "ai_chats": 2, "journal_entries": 1, "goals": 2}


def test_every_record_is_annotated_with_its_owner(service):
    data = service.load_analytics()
    assert {(a.id, a.user_id, a.user_name) for a in data.assessments} == {
        ("a1", "u1", "Alice Smith"),
        ("a2", "u1", "Alice Smith"),
        ("a3", "u2", "Bob Jones"),
    }
    assert data.journal_entries[0].user_name == "Bob Jones"


def test_one_failing_subcollection_does_not_affect_the_rest(store, service):
    store.failing.add(("users", "u1", "assessments"))
    data = service.load_analytics()
    assert _ids(data.assessments) == ["a3"]
    assert _ids(data.ai_chats) == ["c1", "c2"]
    assert _ids(data.goals) == ["g1", "g2"]


def test_journal_fallback_collection_is_read_when_primary_is_empty(store, service):
    store.collections[("users", "u1", "journals")] = [
        ("old1", {"title": "First entry", "mood": "tired"}),
        ("old2", {"title": "Second entry", "mood": "better"}),
    ]
    data = service.load_analytics()
    assert _ids(data.journal_entries) == ["old1", "old2", "j1"]
    assert [(j.user_id, j.user_name) for j in data.journal_entries[:2]] == [("u1", "Alice Smith")] * 2


def test_journal_fallback_is_skipped_when_primary_fails(store, service):
    store.failing.add(("users", "u1", "journal_entries"))
    store.collections[("users", "u1", "journals")] = [("old1", {"title": "First entry"})]
    data = service.load_analytics()
    assert ("users", "u1", "journals") not in store.reads
    assert _ids(data.journal_entries) == ["j1"]


def test_root_failure_is_reported_not_swallowed(store, service):
    store.failing.add(("users",))
    with pytest.raises(StoreError):
        service.analytics.load()
    assert service.load_analytics() is None


def test_results_do_not_depend_on_worker_count():
    serial = AnalyticsLoader(FakeStore(sample_collections()), max_workers=1).load()
    parallel = AnalyticsLoader(FakeStore(sample_collections()), max_workers=16).load()
    for name in ("assessments", "ai_chats", "journal_entries", "goals"):
        assert _ids(getattr(serial, name)) == _ids(getattr(parallel, name))


def test_owner_without_name_is_reported_as_unknown():
    store = FakeStore({
        ("users",): [("u7", {"email": "anon@example.com"})],
        ("users", "u7", "goals"): [("g1", {"title": "Sleep earlier"})],
    })
    data = AnalyticsLoader(store).load()
    assert data.goals[0].user_name == "Unknown"
    assert data.goals[0].user_id == "u7"


def test_no_users_means_no_subcollection_reads():
    store = FakeStore({("users",): []})
    data = AnalyticsLoader(store).load()
    assert data.counts() == {"assessments": 0, "ai_chats": 0, "journal_entries": 0, "goals": 0}
    assert store.reads == [("users",)]


def test_loader_rejects_non_positive_worker_count(store):
    with pytest.raises(ValueError):
        AnalyticsLoader(store, max_workers=0)


def test_overview_combines_users_and_community_counts(service):
    users, stats = service.load_overview()
    assert _ids(users) == ["u2", "u1"]
    assert stats == DashboardStats(total_users=2, active_users=1, total_discussions=2, total_support_groups=2)


def test_overview_propagates_root_failures(store, service):
    store.failing.add(("support_groups",))
    with pytest.raises(StoreError):
        service.load_overview()


def test_community_board_lists_newest_discussions_first(service):
    board = service.community.load()
    assert _ids(board.discussions) == ["d2", "d1"]
    assert _ids(board.support_groups) == ["s1", "s2"]
    assert board.discussions[1].message_count == 4


def test_malformed_user_timestamp_does_not_abort_analytics(store, service):
    store.collections[("users",)].append(
        ("u3", {"name": "Carol", "createdAt": {"seconds": "abc"}, "lastLogin": {"seconds": 10**20}})
    )
    store.collections[("users", "u3", "goals")] = [("g3", {"title": "Read more", "progress": 10})]
    data = service.load_analytics()
    assert data is not None
    assert _ids(data.goals) == ["g1", "g2", "g3"]
    assert data.goals[2].user_name == "Carol"


def test_malformed_record_timestamp_keeps_the_rest_of_the_subcollection(store, service):
    store.collections[("users", "u1", "assessments")].append(
        ("a9", {"type": "PHQ-9", "score": 40, "date": {"seconds": "soon"}})
    )
    data = service.load_analytics()
    assert _ids(data.assessments) == ["a1", "a2", "a9", "a3"]
    assert data.assessments[2].date is None


def test_users_without_join_date_are_still_counted(store, service):
    store.collections[("users",)].append(
        ("u3", {"name": "Carol", "email": "carol@example.com", "streak": 2, "emailVerified": True})
    )
    users, stats = service.load_overview()
    assert _ids(users) == ["u2", "u1", "u3"]
    assert (stats.total_users, stats.active_users) == (3, 2)
    assert "Carol" in service.export_users_csv(users).decode("utf-8")


def test_subcollection_fetches_respect_worker_bound():
    collections = {("users",): [(f"u{i}", {"name": f"User {i}"}) for i in range(6)]}
    store = ConcurrencyTrackingStore(collections)
    AnalyticsLoader(store, max_workers=3).load()
    assert 1 < store.peak <= 3
    # users, then four subcollections per user plus the empty-journal fallback
    assert len(store.reads) == 1 + 6 * 5


def test_single_worker_fetches_one_subcollection_at_a_time():
    collections = {("users",): [(f"u{i}", {"name": f"User {i}"}) for i in range(3)]}
    store = ConcurrencyTrackingStore(collections, delay=0.005)
    AnalyticsLoader(store, max_workers=1).load()
    assert store.peak == 1
