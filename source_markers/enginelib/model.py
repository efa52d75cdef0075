"""Marker and marker set value types."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional, Tuple


class MarkerType(IntEnum):
    """Marker severity/category; values are the wire integers."""

    ERROR = 0
    WARNING = 1
    BOX = 2
    INFO = 3
    STYLE = 4
    USAGE = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: object) -> "MarkerType":
        """Accept either the wire integer or the lower-case label."""
        if isinstance(value, bool):
            raise ValueError(f"Invalid marker type: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown marker type: {value!r}") from None
        raise ValueError(f"Invalid marker type: {value!r}")


class AutoSelect(IntEnum):
    NONE = 0
    SELECT_FIRST = 1


@dataclass(frozen=True)
class Marker:
    kind: MarkerType
    path: str
    line: int
    column: int
    message: str = ""
    show_error_list: bool = False


@dataclass(frozen=True)
class MarkerSet:
    name: str
    base_path: Optional[str] = None
    markers: Tuple[Marker, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Marker set name must not be empty")
        # accept lists from callers; store an immutable tuple
        object.__setattr__(self, "markers", tuple(self.markers))
        if not self.base_path:
            object.__setattr__(self, "base_path", None)

    @classmethod
    def build(
        cls,
        name: str,
        markers: Iterable[Marker] = (),
        base_path: Optional[str] = None,
    ) -> "MarkerSet":
        return cls(name=name, base_path=base_path, markers=tuple(markers))

    def __len__(self) -> int:
        return len(self.markers)
