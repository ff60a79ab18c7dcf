"""
Tests for read-side views (schoolsite/sync/filters.py)
"""

from datetime import datetime, timezone

from schoolsite.models.defaults import default_document
from schoolsite.models.entities import EnrollmentStatus
from schoolsite.sync.filters import (
    active_albums,
    active_news,
    enrollment_counts,
    is_expired,
    parse_timestamp,
    sorted_enrollments,
    sorted_submissions,
    unread_submission_count,
    visible_pages,
)
from schoolsite.sync.operations import Insert, Update, apply_operation

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _with(document, collection, *entities):
    for entity in entities:
        document = apply_operation(document, Insert(collection, entity))
    return document


class TestTimestamps:
    """Tests for timestamp parsing and expiry."""

    def test_parse_date_only_is_utc_midnight(self):
        assert parse_timestamp("2026-01-02") == datetime(2026, 1, 2, tzinfo=timezone.utc)

    def test_parse_zulu(self):
        assert parse_timestamp("2026-01-02T10:00:00Z").hour == 10

    def test_parse_garbage(self):
        assert parse_timestamp("next week") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None

    def test_unset_or_invalid_never_expires(self):
        assert is_expired(None, NOW) is False
        assert is_expired("soon", NOW) is False

    def test_expiry_boundary(self):
        """Test that an item expires at its expiry instant."""
        assert is_expired("2026-10-19T12:00:00Z", NOW) is True
        assert is_expired("2026-10-19T12:00:01Z", NOW) is False

    def test_naive_now_is_treated_as_utc(self):
        assert is_expired("2026-10-19", datetime(2026, 10, 20)) is True


class TestActiveViews:
    """Tests for expiry-filtered views."""

    def test_active_news(self):
        """Test that only unexpired news is returned, newest date first."""
        document = _with(
            default_document(), "news",
            {"id": "1", "title": "Zonder einde", "date": "2026-03-01"},
            {"id": "2", "title": "Lang geldig", "date": "2026-05-01", "expiryDate": "2099-01-01"},
            {"id": "3", "title": "Verlopen", "date": "2026-06-01", "expiryDate": "2000-01-01"},
        )
        assert [item.id for item in active_news(document)] == ["2", "1"]

    def test_active_albums_keep_stored_order(self):
        document = _with(
            default_document(), "albums",
            {"id": "a", "title": "Sportdag"},
            {"id": "b", "title": "Carnaval", "expiryDate": "2020-01-01"},
            {"id": "c", "title": "Schoolreis", "expiryDate": "2099-01-01"},
        )
        assert [album.id for album in active_albums(document, NOW)] == ["a", "c"]


class TestPagesAndInbox:
    """Tests for page visibility and admin inbox views."""

    def test_visible_pages_sorted_by_order(self):
        document = apply_operation(default_document(), Update("pages", "about", {"active": False}))
        document = apply_operation(document, Update("pages", "contact", {"order": -1}))
        slugs = [page.slug for page in visible_pages(document)]
        assert slugs[0] == "contact"
        assert "about" not in slugs

    def test_submissions_newest_first_and_unread_count(self):
        document = _with(
            default_document(), "submissions",
            {"id": "1", "name": "A", "date": "2026-01-01T08:00:00Z"},
            {"id": "2", "name": "B", "date": "2026-02-01T08:00:00Z", "status": "Gelezen"},
        )
        assert [s.id for s in sorted_submissions(document)] == ["2", "1"]
        assert unread_submission_count(document) == 1

    def test_enrollment_views(self):
        document = _with(
            default_document(), "enrollments",
            {"id": "1", "submittedAt": "2026-01-01T08:00:00Z"},
            {"id": "2", "submittedAt": "2026-03-01T08:00:00Z", "status": "gerealiseerd"},
        )
        assert [e.id for e in sorted_enrollments(document)] == ["2", "1"]
        counts = enrollment_counts(document)
        assert counts[EnrollmentStatus.NEW] == 1
        assert counts[EnrollmentStatus.FULFILLED] == 1
        assert counts[EnrollmentStatus.IN_PROGRESS] == 0
