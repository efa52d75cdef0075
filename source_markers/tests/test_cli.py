import json
from pathlib import Path

import yaml

from source_markers.cli import main


def write_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "source_markers.yaml"
    with open(config_path, "w", encoding="utf-8") as handle:
        yaml.safe_dump({"state_file": "scratch/db.json", "home_dir": str(tmp_path / "home")}, handle)
    return config_path


def write_set(tmp_path: Path, name: str) -> Path:
    path = tmp_path / f"{name.lower()}.yaml"
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(
            {"name": name, "markers": [{"type": "info", "path": "/p.py", "line": 1, "column": 1, "message": name}]},
            handle,
        )
    return path


def read_state(tmp_path: Path) -> dict:
    with open(tmp_path / "scratch" / "db.json", "r", encoding="utf-8") as handle:
        return json.load(handle)


def test_publish_select_and_clear(tmp_path, capsys):
    config = str(write_config(tmp_path))

    assert main(["-c", config, "publish", str(write_set(tmp_path, "Lint")), str(write_set(tmp_path, "Build"))]) == 0
    state = read_state(tmp_path)
    assert state["active_set"] == "Build"
    assert [entry["name"] for entry in state["sets"]] == ["Lint", "Build"]

    assert main(["-c", config, "select", "Lint"]) == 0
    assert read_state(tmp_path)["active_set"] == "Lint"

    assert main(["-c", config, "select", "Nope"]) == 1
    assert read_state(tmp_path)["active_set"] == "Lint"

    capsys.readouterr()
    assert main(["-c", config, "show"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["names"] == ["Lint", "Build"]
    assert shown["markers"]["name"] == "Lint"

    assert main(["-c", config, "clear-active"]) == 0
    state = read_state(tmp_path)
    assert state["active_set"] == "Build"
    assert [entry["name"] for entry in state["sets"]] == ["Build"]

    assert main(["-c", config, "clear"]) == 0
    assert read_state(tmp_path) == {"active_set": "", "sets": []}


def test_publish_reports_bad_files(tmp_path):
    config = str(write_config(tmp_path))
    bad = tmp_path / "bad.yaml"
    bad.write_text("name: Lint\n", encoding="utf-8")
    missing = tmp_path / "missing.yaml"

    assert main(["-c", config, "publish", str(bad), str(missing), str(write_set(tmp_path, "Ok"))]) == 1
    assert [entry["name"] for entry in read_state(tmp_path)["sets"]] == ["Ok"]
