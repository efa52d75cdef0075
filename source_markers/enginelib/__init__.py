"""Engine layer modules for source markers."""

from .aliasing import PathAliaser
from .codec import MarkerSetError, marker_set_from_document
from .marker_store import MarkerStore, SnapshotLoadResult
from .model import AutoSelect, Marker, MarkerSet, MarkerType
from .notifier import ClientEvent, ClientEventQueue, Notifier
from .state_store import MarkerStateFile

__all__ = [
    "AutoSelect",
    "ClientEvent",
    "ClientEventQueue",
    "Marker",
    "MarkerSet",
    "MarkerSetError",
    "MarkerStateFile",
    "MarkerStore",
    "MarkerType",
    "Notifier",
    "PathAliaser",
    "SnapshotLoadResult",
    "marker_set_from_document",
]
