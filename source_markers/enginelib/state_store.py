"""Persistent storage for the session's marker sets."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MarkerStateFile:
    """Read and write the persisted marker snapshot.

    Only the owning service touches the file: it is read once at start-up
    and written once at a clean shutdown.
    """

    def __init__(self, path: Path | str, atomic: bool = True):
        self.path = Path(path)
        self.atomic = atomic

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or ``None`` when there is nothing usable."""

        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as exc:
            logger.warning("Invalid marker state json in %s: %s", self.path, exc)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Unable to read marker state %s: %s", self.path, exc)
            return None

        if not isinstance(data, dict):
            logger.warning("Ignoring marker state %s: expected an object", self.path)
            return None
        return data

    def write(self, payload: Dict[str, Any]) -> bool:
        """Write ``payload``; failures are logged and reported as ``False``."""

        data = json.dumps(payload, ensure_ascii=False, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.atomic:
                with open(self.path, "w", encoding="utf-8") as handle:
                    handle.write(data)
                return True
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Unable to write marker state %s: %s", self.path, exc)
            return False
        return True
