"""JSON encoding and decoding for marker sets.

Two shapes are produced: the persisted snapshot written at shutdown and
the client state view pushed with every change. Decoding of persisted
snapshots is best effort; a malformed set or marker entry is dropped with
a warning while the rest of the document is kept.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import ValidationError

from .aliasing import IDENTITY_ALIASER, PathAliaser
from .model import Marker, MarkerSet, MarkerType

logger = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).resolve().parent / "schemas" / "schema.marker_state.json"

with open(SCHEMA_FILE, "r", encoding="utf-8") as _handle:
    STATE_SCHEMA: Dict[str, Any] = json.load(_handle)

_DEFS = STATE_SCHEMA["$defs"]
SET_SCHEMA = _DEFS["marker_set"]
MARKER_SCHEMA = _DEFS["marker"]
PUBLISHED_SET_SCHEMA = _DEFS["published_set"]


class MarkerSetError(ValueError):
    """A producer-supplied marker set document is malformed."""


@dataclass
class DecodedSnapshot:
    """Result of folding a persisted snapshot into marker sets."""

    active_set: str
    sets: List[MarkerSet] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    dropped_sets: int = 0
    dropped_markers: int = 0


def _is_strict_integer(checker, instance) -> bool:
    return isinstance(instance, int) and not isinstance(instance, bool)


# "integer" also admits integral floats such as 4.0; markers only take real ints
StrictValidator = validators.extend(
    Draft202012Validator,
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine("integer", _is_strict_integer),
)


def _check(item: Any, schema: Dict[str, Any]) -> Optional[str]:
    try:
        StrictValidator(schema).validate(item)
    except ValidationError as err:
        location = "/".join(str(part) for part in err.absolute_path)
        return f"{location}: {err.message}" if location else err.message
    return None


# ----------------------- encoding -----------------------
def marker_to_json(marker: Marker, aliaser: PathAliaser = IDENTITY_ALIASER) -> Dict[str, Any]:
    return {
        "type": int(marker.kind),
        "path": aliaser.alias(marker.path),
        "line": marker.line,
        "column": marker.column,
        "message": marker.message,
        "show_error_list": marker.show_error_list,
    }


def marker_set_to_json(marker_set: MarkerSet, aliaser: PathAliaser = IDENTITY_ALIASER) -> Dict[str, Any]:
    return {
        "name": marker_set.name,
        "base_path": aliaser.alias(marker_set.base_path) if marker_set.base_path else "",
        "markers": [marker_to_json(marker, aliaser) for marker in marker_set.markers],
    }


def snapshot_to_json(
    active_set: str,
    sets: List[MarkerSet],
    aliaser: PathAliaser = IDENTITY_ALIASER,
) -> Dict[str, Any]:
    return {
        "active_set": active_set,
        "sets": [marker_set_to_json(marker_set, aliaser) for marker_set in sets],
    }


def marker_set_to_client_json(marker_set: MarkerSet, aliaser: PathAliaser = IDENTITY_ALIASER) -> Dict[str, Any]:
    """Client form of a set: kind labels, aliased paths, "/"-terminated base path."""

    base_path: Optional[str] = None
    if marker_set.base_path:
        base_path = aliaser.alias(marker_set.base_path)
        if not base_path.endswith("/"):
            base_path += "/"
    return {
        "name": marker_set.name,
        "base_path": base_path,
        "markers": [
            {
                "type": marker.kind.label,
                "path": aliaser.alias(marker.path),
                "line": marker.line,
                "column": marker.column,
                "message": marker.message,
                "show_error_list": marker.show_error_list,
            }
            for marker in marker_set.markers
        ],
    }


# ----------------------- decoding -----------------------
def decode_snapshot(data: Any, aliaser: PathAliaser = IDENTITY_ALIASER) -> DecodedSnapshot:
    """Fold a persisted snapshot into marker sets.

    Raises ``ValueError`` only when the top-level shape is unreadable.
    Later entries with a name already seen replace the earlier entry in
    place, keeping names unique.
    """

    error = _check(data, STATE_SCHEMA)
    if error:
        raise ValueError(f"invalid marker state: {error}")

    decoded = DecodedSnapshot(active_set=data["active_set"])
    positions: Dict[str, int] = {}
    for index, entry in enumerate(data["sets"]):
        error = _check(entry, SET_SCHEMA)
        if error:
            message = f"sets/{index}: {error}"
            logger.warning("Dropping marker set entry %s", message)
            decoded.warnings.append(message)
            decoded.dropped_sets += 1
            continue

        markers, warnings = _decode_markers(entry["markers"], aliaser, f"sets/{index}")
        decoded.warnings.extend(warnings)
        decoded.dropped_markers += len(warnings)

        base_path = entry.get("base_path") or None
        marker_set = MarkerSet(
            name=entry["name"],
            base_path=aliaser.resolve(base_path) if base_path else None,
            markers=markers,
        )
        if marker_set.name in positions:
            message = f"sets/{index}: duplicate set name {marker_set.name!r} replaces earlier entry"
            logger.warning("%s", message)
            decoded.warnings.append(message)
            decoded.sets[positions[marker_set.name]] = marker_set
            continue
        positions[marker_set.name] = len(decoded.sets)
        decoded.sets.append(marker_set)
    return decoded


def _decode_markers(
    entries: List[Any],
    aliaser: PathAliaser,
    where: str,
) -> Tuple[Tuple[Marker, ...], List[str]]:
    markers: List[Marker] = []
    warnings: List[str] = []
    for index, entry in enumerate(entries):
        error = _check(entry, MARKER_SCHEMA)
        if error:
            message = f"{where}/markers/{index}: {error}"
            logger.warning("Dropping marker entry %s", message)
            warnings.append(message)
            continue
        markers.append(
            Marker(
                kind=MarkerType(entry["type"]),
                path=aliaser.resolve(entry["path"]),
                line=entry["line"],
                column=entry["column"],
                message=entry["message"],
                show_error_list=entry["show_error_list"],
            )
        )
    return tuple(markers), warnings


def marker_set_from_document(data: Any, aliaser: PathAliaser = IDENTITY_ALIASER) -> MarkerSet:
    """Build a set from a producer document; strict, unlike snapshot loading."""

    error = _check(data, PUBLISHED_SET_SCHEMA)
    if error:
        raise MarkerSetError(error)
    markers = [
        Marker(
            kind=MarkerType.parse(entry["type"]),
            path=aliaser.resolve(entry["path"]),
            line=entry["line"],
            column=entry["column"],
            message=entry.get("message", ""),
            show_error_list=bool(entry.get("show_error_list", False)),
        )
        for entry in data["markers"]
    ]
    base_path = data.get("base_path") or None
    return MarkerSet(
        name=data["name"],
        base_path=aliaser.resolve(base_path) if base_path else None,
        markers=tuple(markers),
    )
