import os

import pytest

from tools.errors import ErrorCategory, ReviewError
from tools.file_guard import (
    detect_language,
    display_path,
    is_binary,
    read_source,
    sanitize_input,
    validate_file_access,
    validate_file_path,
)


ALLOWED = {".js", ".py"}


class TestValidateFilePath:
    def test_relative_path_resolves_under_root(self, tmp_path):
        result = validate_file_path("src/a.js", str(tmp_path), ALLOWED)
        assert result.path == os.path.join(str(tmp_path), "src", "a.js")
        assert result.suffix == ".js"
        assert result.display_path == os.path.join("src", "a.js")

    def test_absolute_path_inside_root_is_accepted(self, tmp_path):
        target = os.path.join(str(tmp_path), "a.py")
        assert validate_file_path(target, str(tmp_path), ALLOWED).path == target

    def test_parent_traversal_is_rejected(self, tmp_path):
        with pytest.raises(ReviewError) as exc_info:
            validate_file_path("../../etc/passwd", str(tmp_path), ALLOWED)
        assert exc_info.value.category == ErrorCategory.PATH_TRAVERSAL
        assert exc_info.value.message == "Invalid file path: path traversal detected"

    def test_traversal_wins_over_suffix_check(self, tmp_path):
        with pytest.raises(ReviewError) as exc_info:
            validate_file_path("../outside.js", str(tmp_path), ALLOWED)
        assert exc_info.value.category == ErrorCategory.PATH_TRAVERSAL

    def test_sibling_with_shared_prefix_is_rejected(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        sibling = tmp_path / "root-evil"
        sibling.mkdir()
        with pytest.raises(ReviewError) as exc_info:
            validate_file_path(str(sibling / "a.js"), str(root), ALLOWED)
        assert exc_info.value.category == ErrorCategory.PATH_TRAVERSAL
        with pytest.raises(ReviewError):
            validate_file_path("../root-evil/a.js", str(root), ALLOWED)

    def test_dot_segments_that_stay_inside_are_fine(self, tmp_path):
        result = validate_file_path("src/../lib/b.py", str(tmp_path), ALLOWED)
        assert result.path == os.path.join(str(tmp_path), "lib", "b.py")

    def test_unsupported_suffix(self, tmp_path):
        with pytest.raises(ReviewError) as exc_info:
            validate_file_path("notes.txt", str(tmp_path), ALLOWED)
        assert exc_info.value.category == ErrorCategory.UNSUPPORTED_TYPE
        assert "Unsupported file extension: .txt" in str(exc_info.value)

    def test_suffix_match_ignores_case(self, tmp_path):
        assert validate_file_path("LEGACY.JS", str(tmp_path), ALLOWED).suffix == ".js"

    @pytest.mark.parametrize("raw", ["", None, 42])
    def test_empty_or_non_string(self, tmp_path, raw):
        with pytest.raises(ReviewError) as exc_info:
            validate_file_path(raw, str(tmp_path), ALLOWED)
        assert exc_info.value.category == ErrorCategory.INVALID_INPUT


def test_null_byte_is_invalid_input(tmp_path):
    with pytest.raises(ReviewError) as exc_info:
        validate_file_path("a\x00.py", str(tmp_path), ALLOWED)
    assert exc_info.value.category == ErrorCategory.INVALID_INPUT


def test_display_path_falls_back_to_basename(tmp_path):
    assert display_path("/elsewhere/x.py", str(tmp_path)) == "x.py"


class TestBinaryDetection:
    def test_null_byte_means_binary(self, tmp_path):
        target = tmp_path / "blob.js"
        target.write_bytes(b"var a = 1;\x00\x01")
        assert is_binary(str(target)) is True

    def test_plain_source_is_text(self, tmp_path):
        target = tmp_path / "a.js"
        target.write_text("console.log(1)\n\tindented\r\n", encoding="utf-8")
        assert is_binary(str(target)) is False

    def test_empty_file_is_text(self, tmp_path):
        target = tmp_path / "empty.py"
        target.write_bytes(b"")
        assert is_binary(str(target)) is False

    def test_mostly_control_bytes_is_binary(self, tmp_path):
        target = tmp_path / "ctrl.py"
        target.write_bytes(b"\x01\x02\x03\x04" * 10 + b"abcdef")
        assert is_binary(str(target)) is True

    def test_few_control_bytes_is_text(self, tmp_path):
        target = tmp_path / "mostly.py"
        target.write_bytes(b"\x1b[0m" + b"print('hello world')\n" * 5)
        assert is_binary(str(target)) is False

    def test_only_the_leading_sample_is_inspected(self, tmp_path):
        target = tmp_path / "late.py"
        target.write_bytes(b"x = 1\n" * 200 + b"\x00" * 64)
        assert is_binary(str(target)) is False


class TestValidateFileAccess:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ReviewError) as exc_info:
            validate_file_access(str(tmp_path / "missing.js"), 1024)
        assert exc_info.value.category == ErrorCategory.FILE_ACCESS

    def test_directory_is_not_a_file(self, tmp_path):
        folder = tmp_path / "pkg.js"
        folder.mkdir()
        with pytest.raises(ReviewError) as exc_info:
            validate_file_access(str(folder), 1024)
        assert exc_info.value.category == ErrorCategory.NOT_A_FILE

    def test_size_ceiling(self, tmp_path):
        target = tmp_path / "big.js"
        target.write_text("a" * 2048, encoding="utf-8")
        with pytest.raises(ReviewError) as exc_info:
            validate_file_access(str(target), 1024)
        assert exc_info.value.category == ErrorCategory.FILE_TOO_LARGE
        assert exc_info.value.message == "File too large: 2048 bytes (max: 1024)"

    def test_binary_content(self, tmp_path):
        target = tmp_path / "blob.js"
        target.write_bytes(b"\x00\x00\x00")
        with pytest.raises(ReviewError) as exc_info:
            validate_file_access(str(target), 1024)
        assert exc_info.value.category == ErrorCategory.BINARY_CONTENT

    def test_returns_stat_for_text_file(self, tmp_path):
        target = tmp_path / "a.js"
        target.write_text("console.log(1)\n", encoding="utf-8")
        assert validate_file_access(str(target), 1024).st_size == 15


class TestSanitizeInput:
    def test_strips_control_characters_and_normalizes_newlines(self):
        assert sanitize_input("  a\x00b\x07c\r\nd\te  ", 100) == "abc\nd\te"

    def test_too_long(self):
        with pytest.raises(ReviewError) as exc_info:
            sanitize_input("x" * 11, 10)
        assert exc_info.value.category == ErrorCategory.INVALID_INPUT
        assert exc_info.value.message == "Input too long: 11 characters (max: 10)"

    @pytest.mark.parametrize("value", [None, "", 12])
    def test_absent_values_become_empty(self, value):
        assert sanitize_input(value, 10) == ""


class TestDetectLanguage:
    def test_from_suffix(self):
        assert detect_language("/p/a.py", None) == "Python"
        assert detect_language("/p/a.TSX", None) == "React TSX"

    def test_override_is_sanitized(self):
        assert detect_language("/p/a.py", " Cython\x01 ") == "Cython"

    def test_blank_override_falls_back(self):
        assert detect_language("/p/a.js", "\x01\x02") == "JavaScript"

    def test_unknown_suffix(self):
        assert detect_language("/p/a.unknownext", None) == "Unknown"


def test_read_source_rejects_invalid_utf8(tmp_path):
    target = tmp_path / "latin.py"
    target.write_bytes(b"name = '\xe9'\n")
    with pytest.raises(ReviewError) as exc_info:
        read_source(str(target))
    assert exc_info.value.category == ErrorCategory.FILE_ACCESS
