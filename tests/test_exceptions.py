"""Tests for custom exceptions."""

import pytest

from eustatscore.exceptions import (
    DataParsingError,
    DatasetNotFoundError,
    EurostatAPIError,
    InvalidParameterError,
)


class TestEurostatAPIError:
    """Test cases for EurostatAPIError base exception."""

    def test_basic_creation(self):
        error = EurostatAPIError("Test error message")
        assert str(error) == "Test error message"
        assert error.status_code is None

    def test_status_code(self):
        error = EurostatAPIError("API Error 500", status_code=500)
        assert error.status_code == 500

    def test_raising_and_catching(self):
        with pytest.raises(EurostatAPIError, match="Test error"):
            raise EurostatAPIError("Test error")


class TestHierarchy:
    """All package errors can be caught through the base class."""

    @pytest.mark.parametrize("error_class", [DatasetNotFoundError, InvalidParameterError, DataParsingError])
    def test_subclasses(self, error_class):
        error = error_class("message", status_code=400)
        assert isinstance(error, EurostatAPIError)
        assert error.status_code == 400

        with pytest.raises(EurostatAPIError):
            raise error

    def test_subclasses_are_distinct(self):
        assert not issubclass(DatasetNotFoundError, InvalidParameterError)
        assert not issubclass(InvalidParameterError, DatasetNotFoundError)
