"""Tests for utility functions."""

import pytest

from opengamesync.utils import format_size, normalize_relative_path


class TestNormalizeRelativePath:
    """Tests for normalize_relative_path."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("game.sav", "game.sav"),
            ("slot1/game.sav", "slot1/game.sav"),
            ("/slot1/game.sav", "slot1/game.sav"),
            ("./slot1/./game.sav", "slot1/game.sav"),
            ("slot1//game.sav", "slot1/game.sav"),
        ],
    )
    def test_normalizes(self, path, expected):
        """Test separators and redundant components are normalized."""
        assert normalize_relative_path(path) == expected

    def test_backslashes_as_separators(self):
        """Test backslashes split components when asked to."""
        assert (
            normalize_relative_path("slot1\\game.sav", backslash_separators=True)
            == "slot1/game.sav"
        )
        with pytest.raises(ValueError):
            normalize_relative_path("..\\outside.sav", backslash_separators=True)

    def test_backslashes_kept_as_name_characters(self):
        """Test a backslash stays part of the name on POSIX-style input."""
        assert (
            normalize_relative_path("slot\\1.sav", backslash_separators=False)
            == "slot\\1.sav"
        )

    @pytest.mark.parametrize("path", ["", "/", ".", "..", "../a", "a/../../b"])
    def test_rejects_invalid(self, path):
        """Test empty and escaping paths raise ValueError."""
        with pytest.raises(ValueError):
            normalize_relative_path(path)


class TestFormatSize:
    """Tests for format_size."""

    def test_format_bytes(self):
        assert format_size(0) == "0 B"
        assert format_size(1023) == "1023 B"

    def test_format_larger_units(self):
        assert format_size(1536) == "1.5 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"
        assert format_size(3 * 1024**3) == "3.0 GB"
