"""
Tests for retry and id helpers (schoolsite/utils/)
"""

from unittest.mock import MagicMock, patch

import pytest

from schoolsite.core.exceptions import RemoteStoreError
from schoolsite.utils.ids import custom_page_id, new_id, slugify
from schoolsite.utils.retry import fetch_with_retry


class TestFetchWithRetry:
    """Tests for fetch_with_retry."""

    def test_returns_first_success(self):
        fetch = MagicMock(return_value={"news": []})
        sleep = MagicMock()

        assert fetch_with_retry(fetch, max_retries=3, sleep=sleep) == {"news": []}
        fetch.assert_called_once()
        sleep.assert_not_called()

    def test_retries_until_success(self):
        """Test that transient failures are retried with backoff."""
        fetch = MagicMock(side_effect=[RemoteStoreError("down"), RemoteStoreError("down"), "ok"])
        sleep = MagicMock()

        with patch("schoolsite.utils.retry.calculate_backoff_delay", side_effect=[1, 2]):
            assert fetch_with_retry(fetch, max_retries=3, sleep=sleep) == "ok"

        assert fetch.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1, 2]

    def test_reraises_last_error(self):
        """Test that the final failure propagates unchanged."""
        fetch = MagicMock(side_effect=RemoteStoreError("still down"))

        with pytest.raises(RemoteStoreError, match="still down"):
            fetch_with_retry(fetch, max_retries=2, sleep=MagicMock())
        assert fetch.call_count == 2

    def test_zero_retries_still_attempts_once(self):
        fetch = MagicMock(return_value=1)
        assert fetch_with_retry(fetch, max_retries=0, sleep=MagicMock()) == 1


class TestIds:
    """Tests for id generation and slugs."""

    def test_ids_strictly_increase(self):
        """Test that ids created in a burst never repeat."""
        ids = [int(new_id()) for _ in range(200)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_id_is_millisecond_timestamp(self):
        with patch("schoolsite.utils.ids.time.time", return_value=4102444800.0), \
                patch("schoolsite.utils.ids._last_id", 0):
            assert new_id() == "4102444800000"

    def test_custom_page_id_prefix(self):
        assert custom_page_id().startswith("custom-")

    @pytest.mark.parametrize("name,slug", [
        ("Onze Visie", "onze-visie"),
        ("  Zomer   Kamp ", "zomer-kamp"),
        ("Info", "info"),
    ])
    def test_slugify(self, name, slug):
        assert slugify(name) == slug
