import json
import logging
from pathlib import Path

from source_markers.enginelib.state_store import MarkerStateFile


def test_missing_file_reads_as_none(tmp_path: Path):
    assert MarkerStateFile(tmp_path / "absent.json").read() is None


def test_atomic_write_then_read(tmp_path: Path):
    path = tmp_path / "scratch" / "source_markers_db.json"
    state_file = MarkerStateFile(path)
    payload = {"active_set": "Lint", "sets": [{"name": "Lint", "base_path": "", "markers": []}]}

    assert state_file.write(payload)
    assert not path.with_suffix(".json.tmp").exists()
    assert state_file.read() == payload
    with open(path, "r", encoding="utf-8") as handle:
        assert json.load(handle) == payload


def test_plain_write(tmp_path: Path):
    state_file = MarkerStateFile(tmp_path / "db.json", atomic=False)
    assert state_file.write({"active_set": "", "sets": []})
    assert state_file.read() == {"active_set": "", "sets": []}


def test_invalid_json_is_logged_and_ignored(tmp_path: Path, caplog):
    path = tmp_path / "db.json"
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        assert MarkerStateFile(path).read() is None
    assert "Invalid marker state json" in caplog.text


def test_non_object_json_is_ignored(tmp_path: Path):
    path = tmp_path / "db.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert MarkerStateFile(path).read() is None


def test_unreadable_path_is_logged(tmp_path: Path, caplog):
    # a directory in place of the file makes open() fail with an OSError
    path = tmp_path / "db.json"
    path.mkdir()
    with caplog.at_level(logging.ERROR):
        assert MarkerStateFile(path).read() is None
    assert "Unable to read marker state" in caplog.text


def test_write_failure_is_reported(tmp_path: Path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    state_file = MarkerStateFile(blocker / "db.json")
    with caplog.at_level(logging.ERROR):
        assert state_file.write({"active_set": "", "sets": []}) is False
    assert "Unable to write marker state" in caplog.text
