"""Tests for configuration defaults and validation."""
import os
from pathlib import Path

import pytest

from countdown_scraper.config import DATA_DIR, Config


@pytest.fixture
def valid_config(monkeypatch):
    monkeypatch.setattr(Config, "PAGE_TIMEOUT", 30)
    monkeypatch.setattr(Config, "SECONDS_DELAY_BETWEEN_PAGES", 11.0)
    monkeypatch.setattr(Config, "DAY_TIMEZONE", "UTC")
    return Config


@pytest.mark.skipif(
    any(name in os.environ for name in ("DATA_DIR", "URLS_FILE", "SQLITE_PATH")),
    reason="paths overridden by the environment",
)
def test_default_paths_follow_working_directory():
    """Test that data and target paths do not point inside the installed package."""
    assert DATA_DIR == Path("data")
    assert Config.URLS_FILE == Path("urls.txt")
    assert Config.SQLITE_PATH == Path("data") / "products.db"


def test_valid_config_passes(valid_config):
    valid_config.validate(require_storage=False)


def test_negative_delay_is_rejected(valid_config, monkeypatch):
    monkeypatch.setattr(Config, "SECONDS_DELAY_BETWEEN_PAGES", -1.0)

    with pytest.raises(ValueError, match="SECONDS_DELAY_BETWEEN_PAGES"):
        valid_config.validate(require_storage=False)


def test_zero_delay_is_allowed(valid_config, monkeypatch):
    monkeypatch.setattr(Config, "SECONDS_DELAY_BETWEEN_PAGES", 0.0)
    valid_config.validate(require_storage=False)


def test_unknown_timezone_is_rejected(valid_config, monkeypatch):
    monkeypatch.setattr(Config, "DAY_TIMEZONE", "Mars/Olympus_Mons")

    with pytest.raises(ValueError, match="DAY_TIMEZONE"):
        valid_config.validate(require_storage=False)
