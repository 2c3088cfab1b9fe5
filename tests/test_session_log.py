import os

import pytest
from pydantic import ValidationError

from session_log import SessionLog


def test_record_keeps_order_and_last_success(tmp_path):
    log = SessionLog(str(tmp_path))
    first = log.record("code_review", str(tmp_path / "a.js"), True, tags={"language": "JavaScript"})
    log.record("code_analysis", str(tmp_path / "b.py"), False, error="boom", tags={"language": "Python"})

    assert len(log) == 2
    assert [entry.operation for entry in log.entries] == ["code_review", "code_analysis"]
    assert log.last_success is first
    assert log.entries[1].error == "boom"


def test_last_success_only_moves_on_success(tmp_path):
    log = SessionLog(str(tmp_path))
    assert log.last_success is None
    log.record("code_review", "a.js", False)
    assert log.last_success is None
    ok = log.record("code_review", "a.js", True)
    log.record("code_review", "a.js", False)
    assert log.last_success is ok


def test_file_is_shown_relative_to_root(tmp_path):
    log = SessionLog(str(tmp_path))
    entry = log.record("code_review", str(tmp_path / "src" / "a.js"), True)
    assert entry.file == os.path.join("src", "a.js")


def test_file_outside_root_shows_basename(tmp_path):
    log = SessionLog(str(tmp_path / "root"))
    entry = log.record("code_review", "../../etc/passwd", False)
    assert entry.file == "passwd"


def test_missing_file_is_unknown(tmp_path):
    log = SessionLog(str(tmp_path))
    assert log.record("code_review", None, False).file == "unknown"


def test_entries_are_immutable(tmp_path):
    log = SessionLog(str(tmp_path))
    entry = log.record("code_review", "a.js", True)
    with pytest.raises(ValidationError):
        entry.success = False


def test_entries_property_is_a_copy(tmp_path):
    log = SessionLog(str(tmp_path))
    log.record("code_review", "a.js", True)
    log.entries.clear()
    assert len(log) == 1


def test_render_empty(tmp_path):
    text = SessionLog(str(tmp_path)).render()
    assert "**Total Operations**: 0" in text
    assert "No operations performed yet in this session." in text
    assert text.endswith("**Last Successful Operation**: None")


def test_render_lists_entries(tmp_path):
    log = SessionLog(str(tmp_path))
    log.record("code_review", "a.js", True, tags={"language": "JavaScript"})
    log.record("suggest_improvements", "b.py", False)
    text = log.render()

    assert "**Total Operations**: 2" in text
    assert "**1.** code_review - a.js (JavaScript) - " in text
    assert "**2.** suggest_improvements - b.py (Unknown) - " in text
    assert "✅" in text and "❌" in text
    assert text.endswith("**Last Successful Operation**: code_review - a.js (JavaScript) ✅")


def test_snapshot(tmp_path):
    log = SessionLog(str(tmp_path))
    log.record("code_review", "a.js", True)
    snapshot = log.snapshot()
    assert snapshot.total == 1
    assert snapshot.last_success.operation == "code_review"
