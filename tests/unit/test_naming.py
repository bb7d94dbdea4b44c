"""
Unit tests for filename sanitization and blob naming.
"""

import re

import pytest

from blobdrop.core.naming import build_blob_name, current_millis, sanitize_filename

SAFE_NAME = re.compile(r"^[A-Za-z0-9._-]+$")


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_replaces_spaces_and_parentheses(self):
        assert sanitize_filename("My Photo (1).PNG") == "My_Photo_1.PNG"

    def test_replaces_non_ascii_letters(self):
        assert sanitize_filename("héllo world.jpg") == "h_llo_world.jpg"

    def test_strips_path_separators(self):
        assert sanitize_filename("../../etc/passwd") == "....etc_passwd"
        assert sanitize_filename("C:\\Users\\me\\cat.gif") == "C_Users_me_cat.gif"

    def test_drops_underscores_next_to_dots_and_dashes(self):
        assert sanitize_filename("photo (2).png") == "photo_2.png"
        assert sanitize_filename("a _- b") == "a-b"
        assert sanitize_filename("x ._ y") == "x.y"

    def test_collapses_whitespace_and_control_characters(self):
        assert sanitize_filename("a \t\n\x00 b.txt") == "a_b.txt"

    def test_keeps_dots_and_dashes(self):
        assert sanitize_filename("report-2024.final.pdf") == "report-2024.final.pdf"

    def test_strips_leading_and_trailing_underscores(self):
        assert sanitize_filename("  __x__  ") == "x"

    @pytest.mark.parametrize("name", ["", "   ", "()[]{}", "日本語", "___", "\t\n"])
    def test_disallowed_only_input_sanitizes_to_empty(self, name):
        assert sanitize_filename(name) == ""

    @pytest.mark.parametrize(
        "name",
        ["My Photo (1).PNG", "héllo world.jpg", "a  b", "_x_", "ü.png", "weird//name..txt", "a _- (b).c"],
    )
    def test_output_is_safe_and_idempotent(self, name):
        once = sanitize_filename(name)

        assert once
        assert SAFE_NAME.match(once)
        assert not once.startswith("_") and not once.endswith("_")
        assert "__" not in once
        assert sanitize_filename(once) == once


class TestBuildBlobName:
    """Tests for build_blob_name."""

    def test_prefixes_timestamp(self):
        assert build_blob_name("a b.png", timestamp_ms=1700000000123) == "1700000000123-a_b.png"

    def test_empty_sanitized_name_falls_back_to_timestamp(self):
        assert build_blob_name("日本語", timestamp_ms=42) == "42"
        assert build_blob_name("", timestamp_ms=42) == "42"

    def test_uses_current_time_by_default(self):
        before = current_millis()
        name = build_blob_name("x.png")
        after = current_millis()

        timestamp, rest = name.split("-", 1)
        assert rest == "x.png"
        assert before <= int(timestamp) <= after
