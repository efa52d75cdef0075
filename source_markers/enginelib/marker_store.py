"""In-memory model of named marker sets and the active-set selection."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .aliasing import IDENTITY_ALIASER, PathAliaser
from .codec import decode_snapshot, marker_set_to_client_json, snapshot_to_json
from .model import MarkerSet

logger = logging.getLogger(__name__)


@dataclass
class SnapshotLoadResult:
    ok: bool
    sets: int = 0
    dropped_sets: int = 0
    dropped_markers: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "sets": self.sets,
            "dropped_sets": self.dropped_sets,
            "dropped_markers": self.dropped_markers,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class MarkerStore:
    """Ordered marker sets, unique by name, plus the active set name.

    An active name that no longer resolves to a set is tolerated and read
    as "no active set".
    """

    def __init__(self, aliaser: Optional[PathAliaser] = None):
        self.aliaser = aliaser or IDENTITY_ALIASER
        self.active_set_name = ""
        self._sets: List[MarkerSet] = []

    # ----------------------- queries -----------------------
    @property
    def sets(self) -> List[MarkerSet]:
        return list(self._sets)

    def names(self) -> List[str]:
        return [marker_set.name for marker_set in self._sets]

    def find(self, name: str) -> Optional[MarkerSet]:
        index = self._index_of(name)
        return self._sets[index] if index is not None else None

    def active_set(self) -> Optional[MarkerSet]:
        if not self.active_set_name:
            return None
        return self.find(self.active_set_name)

    def __len__(self) -> int:
        return len(self._sets)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._index_of(name) is not None

    def _index_of(self, name: str) -> Optional[int]:
        for index, marker_set in enumerate(self._sets):
            if marker_set.name == name:
                return index
        return None

    # ----------------------- mutations -----------------------
    def clear(self) -> None:
        self.active_set_name = ""
        self._sets = []

    def set_active(self, target: Union[str, MarkerSet]) -> bool:
        """Select a set by name, or upsert a set and select it.

        Selecting an unknown name leaves the store unchanged and returns
        ``False``.
        """
        if isinstance(target, MarkerSet):
            self._upsert(target)
            self.active_set_name = target.name
            return True
        if self._index_of(target) is None:
            logger.debug("Ignoring selection of unknown marker set %r", target)
            return False
        self.active_set_name = target
        return True

    def _upsert(self, marker_set: MarkerSet) -> None:
        index = self._index_of(marker_set.name)
        if index is None:
            self._sets.append(marker_set)
        else:
            self._sets[index] = marker_set

    def clear_active(self) -> None:
        """Remove the active set; the last remaining set becomes active."""
        index = self._index_of(self.active_set_name)
        if index is not None:
            del self._sets[index]
        self.active_set_name = ""
        if self._sets:
            self.active_set_name = self._sets[-1].name

    # ----------------------- serialisation -----------------------
    def snapshot(self) -> Dict[str, Any]:
        return snapshot_to_json(self.active_set_name, self._sets, self.aliaser)

    def state_view(self) -> Dict[str, Any]:
        state: Dict[str, Any] = {"names": None, "markers": None}
        if not self._sets:
            return state
        state["names"] = self.names()
        active = self.active_set()
        if active is not None:
            state["markers"] = marker_set_to_client_json(active, self.aliaser)
        return state

    def load_snapshot(self, data: Any) -> SnapshotLoadResult:
        """Replace the store contents from a persisted snapshot.

        On a structural error the store is left unmodified.
        """
        try:
            decoded = decode_snapshot(data, self.aliaser)
        except ValueError as error:
            return SnapshotLoadResult(ok=False, errors=[str(error)])

        self.active_set_name = decoded.active_set
        self._sets = decoded.sets
        return SnapshotLoadResult(
            ok=True,
            sets=len(decoded.sets),
            dropped_sets=decoded.dropped_sets,
            dropped_markers=decoded.dropped_markers,
            warnings=decoded.warnings,
        )
