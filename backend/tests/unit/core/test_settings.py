"""Tests for process settings validation."""

import pytest
from pydantic import ValidationError

from indexsync.core.config import Settings


def test_log_level_is_normalized():
    assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_invalid_log_level_is_rejected():
    with pytest.raises(ValidationError):
        Settings(LOG_LEVEL="chatty")


@pytest.mark.parametrize("value", [True, False, "wait_for"])
def test_bulk_refresh_values(value):
    assert Settings(BULK_REFRESH=value).BULK_REFRESH == value


def test_invalid_bulk_refresh_is_rejected():
    with pytest.raises(ValidationError):
        Settings(BULK_REFRESH="sometimes")


def test_max_retries_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(ELASTICSEARCH_MAX_RETRIES=0)
