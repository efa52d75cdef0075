"""Named marker sets, the active-set selection, and their persistence."""

from .enginelib import AutoSelect, Marker, MarkerSet, MarkerStore, MarkerType
from .service import MarkerService, ServiceConfig

__all__ = [
    "AutoSelect",
    "Marker",
    "MarkerService",
    "MarkerSet",
    "MarkerStore",
    "MarkerType",
    "ServiceConfig",
]
