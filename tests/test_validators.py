"""
test_validators.py — Unit tests for shared input normalisation helpers.

Tests cover:
  - validate_id_phone: local, international and separated forms; rejects junk
  - normalize_time / normalize_number / time_to_minutes: working-hours config input
  - clean_notes / sanitize_string: free-text handling
"""

import math

import pytest

from hvac_service.shared.validators import (
    clean_notes,
    normalize_number,
    normalize_time,
    sanitize_string,
    time_to_minutes,
    validate_email,
    validate_id_phone,
)


class TestPhone:

    @pytest.mark.parametrize(
        "raw",
        ["081234567890", "+62 812-3456-7890", "6281234567890", "81234567890"],
    )
    def test_normalises_to_e164(self, raw):
        assert validate_id_phone(raw) == "+6281234567890"

    def test_empty_passes_through(self):
        assert validate_id_phone(None) is None
        assert validate_id_phone("") == ""

    @pytest.mark.parametrize("raw", ["12345", "0800", "+62 0812 3456 7890"])
    def test_rejects_invalid_numbers(self, raw):
        with pytest.raises(ValueError):
            validate_id_phone(raw)


class TestEmail:

    def test_lowercases_and_strips(self):
        assert validate_email("  Owner@Djawara.TEST ") == "owner@djawara.test"

    def test_rejects_missing_domain(self):
        with pytest.raises(ValueError):
            validate_email("owner@")


class TestWorkingHoursInput:

    def test_hh_mm_gets_seconds(self):
        assert normalize_time("08:30", "09:00:00") == "08:30:00"

    def test_hh_mm_ss_kept(self):
        assert normalize_time("17:45:15", "17:00:00") == "17:45:15"

    @pytest.mark.parametrize("raw", [None, "", "25:00", "8.30", "abc"])
    def test_invalid_time_falls_back(self, raw):
        assert normalize_time(raw, "09:00:00") == "09:00:00"

    def test_numeric_string_is_parsed(self):
        assert normalize_number(" 7500 ", 5000) == 7500.0

    @pytest.mark.parametrize("raw", [None, "", "lots", float("nan"), math.inf])
    def test_invalid_number_falls_back(self, raw):
        assert normalize_number(raw, 5000) == 5000

    def test_time_to_minutes(self):
        assert time_to_minutes("09:00:00") == 540
        assert time_to_minutes("17:30") == 1050
        assert time_to_minutes("") == 0


class TestFreeText:

    def test_blank_notes_become_none(self):
        assert clean_notes("   ") is None
        assert clean_notes(None) is None

    def test_notes_are_trimmed(self):
        assert clean_notes("  freon ditambah ") == "freon ditambah"

    def test_sanitize_escapes_markup(self):
        assert sanitize_string("<b>AC & kipas</b>") == "&lt;b&gt;AC &amp; kipas&lt;/b&gt;"
