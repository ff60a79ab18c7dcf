"""
Read-side views of the site document.

These are computed on every read from the document and the current time;
nothing here is stored.
"""
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from schoolsite.models.document import SiteDocument
from schoolsite.models.entities import (
    Enrollment,
    EnrollmentStatus,
    FormSubmission,
    NewsItem,
    PageConfig,
    PhotoAlbum,
    SubmissionStatus,
)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO date or datetime string as an aware UTC datetime.

    Date-only values mean midnight UTC. Returns None for empty or
    unparseable input.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def is_expired(expiry_date: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    True once an expiry date has passed.

    An unset or unparseable expiry never hides anything.
    """
    expiry = parse_timestamp(expiry_date)
    if expiry is None:
        return False
    return expiry <= _now(now)


def _sort_key(value: Optional[str]) -> datetime:
    return parse_timestamp(value) or datetime.min.replace(tzinfo=timezone.utc)


def active_news(document: SiteDocument, now: Optional[datetime] = None) -> List[NewsItem]:
    """News whose expiry is unset or strictly in the future, newest date first."""
    now = _now(now)
    items = [item for item in document.news if not is_expired(item.expiry_date, now)]
    return sorted(items, key=lambda item: _sort_key(item.date), reverse=True)


def active_albums(document: SiteDocument, now: Optional[datetime] = None) -> List[PhotoAlbum]:
    """Albums whose expiry is unset or strictly in the future, in stored order."""
    now = _now(now)
    return [album for album in document.albums if not is_expired(album.expiry_date, now)]


def visible_pages(document: SiteDocument) -> List[PageConfig]:
    """Active pages sorted by their explicit order."""
    return sorted((page for page in document.pages if page.active), key=lambda page: page.order)


def sorted_submissions(document: SiteDocument) -> List[FormSubmission]:
    """Submissions, most recent first."""
    return sorted(document.submissions, key=lambda s: _sort_key(s.date), reverse=True)


def sorted_enrollments(document: SiteDocument) -> List[Enrollment]:
    """Enrollments, most recently submitted first."""
    return sorted(document.enrollments, key=lambda e: _sort_key(e.submitted_at), reverse=True)


def unread_submission_count(document: SiteDocument) -> int:
    return sum(1 for s in document.submissions if s.status is SubmissionStatus.NEW)


def enrollment_counts(document: SiteDocument) -> Dict[EnrollmentStatus, int]:
    """Number of enrollments per status, every status present."""
    counts = Counter(e.status for e in document.enrollments)
    return {status: counts.get(status, 0) for status in EnrollmentStatus}
