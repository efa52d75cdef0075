from pathlib import Path

from source_markers.enginelib.aliasing import PathAliaser
from source_markers.enginelib.marker_store import MarkerStore
from source_markers.enginelib.model import Marker, MarkerSet, MarkerType


def test_empty_store_view_is_null():
    assert MarkerStore().state_view() == {"names": None, "markers": None}


def test_unresolved_active_name_hides_markers():
    store = MarkerStore()
    store.set_active(MarkerSet(name="Build"))
    store.active_set_name = "Missing"
    view = store.state_view()
    assert view["names"] == ["Build"]
    assert view["markers"] is None


def test_publish_lint_scenario():
    store = MarkerStore()
    marker = Marker(MarkerType.ERROR, "/a.ts", 10, 1, "bad token", True)
    store.set_active(MarkerSet.build("Lint", [marker]))

    view = store.state_view()
    assert view["names"] == ["Lint"]
    assert view["markers"]["name"] == "Lint"
    assert view["markers"]["base_path"] is None
    assert view["markers"]["markers"] == [
        {
            "type": "error",
            "path": "/a.ts",
            "line": 10,
            "column": 1,
            "message": "bad token",
            "show_error_list": True,
        }
    ]


def test_client_view_aliases_paths_and_terminates_base_path(tmp_path: Path):
    home = tmp_path / "home"
    store = MarkerStore(PathAliaser(home))
    marker = Marker(MarkerType.USAGE, str(home / "proj" / "main.cpp"), 3, 7, "unused", False)
    store.set_active(MarkerSet.build("Compile", [marker], base_path=str(home / "proj")))

    markers = store.state_view()["markers"]
    assert markers["base_path"] == "~/proj/"
    assert markers["markers"][0]["path"] == "~/proj/main.cpp"
    assert markers["markers"][0]["type"] == "usage"


def test_names_follow_insertion_order():
    store = MarkerStore()
    for name in ("Lint", "Build", "Check"):
        store.set_active(MarkerSet(name=name))
    store.set_active("Lint")
    view = store.state_view()
    assert view["names"] == ["Lint", "Build", "Check"]
    assert view["markers"]["name"] == "Lint"
