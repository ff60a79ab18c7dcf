"""
Tests for entity records (schoolsite/models/entities.py)
"""

import pytest

from schoolsite.core.exceptions import ValidationError
from schoolsite.models.entities import (
    CalendarEvent,
    Enrollment,
    EnrollmentStatus,
    FormSubmission,
    NewsItem,
    OuderwerkgroepActivity,
    PageConfig,
    PageType,
    PhotoAlbum,
    SiteConfig,
    SubmissionStatus,
)


class TestFromDict:
    """Tests for building records from JSON."""

    def test_news_item_fields(self):
        item = NewsItem.from_dict({
            "id": "1", "title": "Schoolfeest", "content": "Welkom", "date": "2026-05-01",
            "imageUrl": "/images/news/a.jpg", "category": "Kleuter", "expiryDate": "2026-06-01",
        })
        assert item.title == "Schoolfeest"
        assert item.image_url == "/images/news/a.jpg"
        assert item.expiry_date == "2026-06-01"

    def test_missing_required_field(self):
        """Test that a record without its required field is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            NewsItem.from_dict({"id": "1"})
        assert exc_info.value.field_name == "title"

    def test_empty_required_field(self):
        with pytest.raises(ValidationError):
            NewsItem.from_dict({"id": "1", "title": ""})

    def test_invalid_choice(self):
        """Test that values outside an enumeration are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            NewsItem.from_dict({"id": "1", "title": "x", "category": "Sport"})
        assert exc_info.value.field_value == "Sport"

    def test_event_defaults(self):
        event = CalendarEvent.from_dict({"id": "e", "title": "Kerstvakantie", "date": "2026-12-21"})
        assert event.type == "Activiteit"
        assert event.grades == ["All"]
        assert event.description is None

    def test_list_field_must_hold_strings(self):
        with pytest.raises(ValidationError):
            PhotoAlbum.from_dict({"id": "a", "title": "Sportdag", "images": ["/a.jpg", 3]})

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            SiteConfig.from_dict(["menuUrl"])

    def test_status_enums(self):
        submission = FormSubmission.from_dict({"id": "s", "name": "Jan", "status": "Gelezen"})
        enrollment = Enrollment.from_dict({"id": "n", "status": "in_behandeling"})
        assert submission.status is SubmissionStatus.READ
        assert enrollment.status is EnrollmentStatus.IN_PROGRESS

    def test_invalid_enrollment_status(self):
        with pytest.raises(ValidationError):
            Enrollment.from_dict({"id": "n", "status": "klaar"})

    def test_page_type(self):
        page = PageConfig.from_dict({"id": "home", "name": "Home", "slug": "home", "type": "system"})
        assert page.type is PageType.SYSTEM
        assert page.is_system

    def test_activity_legacy_single_image(self):
        """Test that an older single 'image' becomes the images list."""
        activity = OuderwerkgroepActivity.from_dict({"id": "o", "title": "Kaasverkoop", "image": "/k.jpg"})
        assert activity.images == ["/k.jpg"]
        assert "image" not in activity.extra

    def test_scalar_types_are_checked(self):
        """Test that a number where text belongs is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            NewsItem.from_dict({"id": "1", "title": "x", "date": 20260101})
        assert exc_info.value.field_name == "date"

    def test_int_and_bool_fields(self):
        base = {"id": "p", "name": "Info", "slug": "info"}
        with pytest.raises(ValidationError):
            PageConfig.from_dict({**base, "order": "3"})
        with pytest.raises(ValidationError):
            PageConfig.from_dict({**base, "order": True})
        with pytest.raises(ValidationError):
            PageConfig.from_dict({**base, "active": "yes"})

    def test_optional_field_accepts_null(self):
        item = NewsItem.from_dict({"id": "1", "title": "x", "expiryDate": None})
        assert item.expiry_date is None

    def test_null_for_defaulted_field_uses_default(self):
        item = NewsItem.from_dict({"id": "1", "title": "x", "imageUrl": None})
        assert item.image_url == ""


class TestToDict:
    """Tests for the JSON form of records."""

    def test_unset_optionals_are_omitted(self):
        data = NewsItem.from_dict({"id": "1", "title": "x"}).to_dict()
        assert "expiryDate" not in data
        assert data["category"] == "Algemeen"

    def test_enum_values_on_the_wire(self):
        data = Enrollment.from_dict({"id": "n"}).to_dict()
        assert data["status"] == "nieuw"

    def test_unknown_keys_round_trip(self):
        """Test that enrollment answers survive untouched."""
        raw = {"id": "n", "submittedAt": "2026-01-01T10:00:00Z", "status": "nieuw",
               "childFirstName": "Lotte", "medical": {"allergies": "noten"}}
        enrollment = Enrollment.from_dict(raw)
        assert enrollment.answers["childFirstName"] == "Lotte"
        assert enrollment.to_dict() == raw


class TestPatched:
    """Tests for partial updates."""

    def test_patch_changes_only_given_keys(self):
        item = NewsItem.from_dict({"id": "1", "title": "Oud", "content": "tekst"})
        updated = item.patched({"title": "Nieuw"})
        assert updated.title == "Nieuw"
        assert updated.content == "tekst"
        assert item.title == "Oud"

    def test_patch_is_validated(self):
        item = NewsItem.from_dict({"id": "1", "title": "x"})
        with pytest.raises(ValidationError):
            item.patched({"category": "Sport"})

    def test_id_is_immutable(self):
        item = NewsItem.from_dict({"id": "1", "title": "x"})
        with pytest.raises(ValidationError):
            item.patched({"id": "2"})

    def test_unknown_key_rejected(self):
        item = NewsItem.from_dict({"id": "1", "title": "x"})
        with pytest.raises(ValidationError) as exc_info:
            item.patched({"image_url": "/x.jpg"})
        assert exc_info.value.field_name == "image_url"

    def test_stored_extra_key_may_be_patched(self):
        item = NewsItem.from_dict({"id": "1", "title": "x", "author": "Juf An"})
        assert item.patched({"author": "Meester Tom"}).extra["author"] == "Meester Tom"

    def test_wire_key(self):
        assert NewsItem.wire_key("expiry_date") == "expiryDate"
        assert NewsItem.wire_key("expiryDate") == "expiryDate"
