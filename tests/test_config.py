"""Tests for settings: field names, cached instance, fallbacks that read them."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

from datetime import date
from unittest.mock import patch

from config import Settings, get_settings, settings
from services.earnings import resolve_daily_target, day_window
from services.earnings_policy import DEFAULT_POLICY, ConfigScope


def test_settings_fields_are_lower_case():
    fields = set(Settings.model_fields)
    assert {
        "database_url", "sql_echo", "log_level", "local_timezone",
        "default_daily_target", "default_premium_multiplier",
    } <= fields
    assert all(name == name.lower() for name in fields)


def test_settings_is_cached():
    assert get_settings() is settings


def test_daily_target_falls_back_to_configured_default():
    with patch("services.earnings.settings", Settings(default_daily_target=900)):
        assert resolve_daily_target(DEFAULT_POLICY, ConfigScope.DEFAULT, None) == 900


def test_day_window_uses_configured_timezone():
    with patch("services.earnings.settings", Settings(local_timezone="UTC")):
        start, end = day_window(date(2024, 3, 4))
    assert start.utcoffset().total_seconds() == 0
    assert end.date() == date(2024, 3, 4)
