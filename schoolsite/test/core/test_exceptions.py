"""
Tests for the exception hierarchy (schoolsite/core/exceptions.py)
"""

import pytest

from schoolsite.core.exceptions import (
    ConfigurationError,
    LocalPersistError,
    PersistenceError,
    RejectedOperationError,
    RemoteStoreError,
    SchoolSiteError,
    StorageError,
    ValidationError,
)


class TestSchoolSiteError:
    """Tests for the base error."""

    def test_message_only(self):
        """Test that a bare message is returned unchanged."""
        assert str(SchoolSiteError("boom")) == "boom"

    def test_details_are_appended(self):
        """Test that details render as key=value pairs."""
        error = SchoolSiteError("boom", details={"key": "adminData", "size": 3})
        assert str(error) == "boom (key=adminData, size=3)"

    def test_details_default_to_empty_dict(self):
        assert SchoolSiteError("boom").details == {}


class TestSubclasses:
    """Tests for the specialised errors."""

    @pytest.mark.parametrize("cls", [
        RemoteStoreError, PersistenceError, LocalPersistError, StorageError,
        ValidationError, RejectedOperationError, ConfigurationError,
    ])
    def test_all_inherit_from_base(self, cls):
        """Test that every error can be caught as SchoolSiteError."""
        assert issubclass(cls, SchoolSiteError)

    def test_storage_error_is_not_a_local_persist_error(self):
        """Test that server store failures are not mistaken for cache failures."""
        assert issubclass(StorageError, PersistenceError)
        assert issubclass(LocalPersistError, PersistenceError)
        assert not issubclass(StorageError, LocalPersistError)

    def test_remote_error_includes_status_and_url(self):
        """Test that status code and URL are part of the string."""
        error = RemoteStoreError("GET data returned an error", status_code=503, url="http://x/api/data")
        text = str(error)
        assert "Status: 503" in text
        assert "URL: http://x/api/data" in text
        assert error.status_code == 503

    def test_persist_error_includes_cause(self):
        """Test that the original error is named in the string."""
        error = LocalPersistError("Could not write", original_error=OSError("disk full"))
        assert "Caused by: OSError: disk full" in str(error)

    def test_validation_error_fields(self):
        error = ValidationError("Invalid value", field_name="category", field_value="Sport")
        assert error.field_name == "category"
        assert "Field: category" in str(error)
        assert "Value: Sport" in str(error)

    def test_rejected_operation_fields(self):
        error = RejectedOperationError("System pages cannot be deleted", collection="pages", entity_id="home")
        assert error.collection == "pages"
        assert error.entity_id == "home"
        assert "Id: home" in str(error)

    def test_configuration_error_key(self):
        error = ConfigurationError("Remote API URL is not configured", config_key="SCHOOLSITE_API_URL")
        assert str(error).endswith("Key: SCHOOLSITE_API_URL")
