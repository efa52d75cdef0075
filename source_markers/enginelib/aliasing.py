"""Home-directory path aliasing used at the client and persistence edges."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


class PathAliaser:
    """Convert between absolute paths and ``~``-prefixed aliases.

    With ``home=None`` the aliaser is the identity in both directions.
    """

    def __init__(self, home: Optional[Path | str] = None):
        self.home = Path(home).expanduser() if home is not None else None

    def alias(self, path: str) -> str:
        if self.home is None or not path:
            return path
        home = str(self.home).rstrip(os.sep) or os.sep
        if path == home:
            return "~"
        prefix = home if home.endswith(os.sep) else home + os.sep
        if path.startswith(prefix):
            return "~/" + path[len(prefix):]
        return path

    def resolve(self, path: str) -> str:
        if self.home is None or not path:
            return path
        if path == "~":
            return str(self.home)
        if path.startswith("~/"):
            return str(self.home / path[2:])
        return path


IDENTITY_ALIASER = PathAliaser()
