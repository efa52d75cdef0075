"""High-level service orchestration for source markers."""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .enginelib.aliasing import PathAliaser
from .enginelib.codec import MarkerSetError, marker_set_from_document
from .enginelib.marker_store import MarkerStore, SnapshotLoadResult
from .enginelib.model import AutoSelect, MarkerSet
from .enginelib.notifier import ClientEvent, ClientEventQueue, EventChannel, Notifier
from .enginelib.state_store import MarkerStateFile

logger = logging.getLogger(__name__)

PUBLISHABLE_SUFFIXES = (".yaml", ".yml", ".json")
RECENT_EVENTS_LIMIT = 500


@dataclass
class ServiceConfig:
    state_file: Path
    inbox_dir: Path
    home_dir: Optional[Path] = None
    atomic_writes: bool = True
    watch: bool = False
    debounce_seconds: float = 0.5
    event_queue_size: int = 100
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5174

    @staticmethod
    def from_mapping(
        mapping: Dict[str, Any],
        base_dir: Optional[Path] = None,
    ) -> "ServiceConfig":
        def resolve(value: str) -> Path:
            path = Path(value).expanduser()
            if not path.is_absolute() and base_dir is not None:
                path = base_dir / path
            return path

        if "state_file" not in mapping:
            raise ValueError("configuration is missing required key 'state_file'")
        event_queue_size = int(mapping.get("event_queue_size", 100))
        if event_queue_size < 1:
            raise ValueError(f"event_queue_size must be at least 1, got {event_queue_size}")
        home_dir = mapping.get("home_dir")
        return ServiceConfig(
            state_file=resolve(mapping["state_file"]),
            inbox_dir=resolve(mapping.get("inbox_dir", "inbox")),
            home_dir=resolve(home_dir) if home_dir else Path.home(),
            atomic_writes=bool(mapping.get("atomic_writes", True)),
            watch=bool(mapping.get("watch", False)),
            debounce_seconds=float(mapping.get("debounce_seconds", 0.5)),
            event_queue_size=event_queue_size,
            log_level=str(mapping.get("log_level", "INFO")).upper(),
            host=str(mapping.get("host", "127.0.0.1")),
            port=int(mapping.get("port", 5174)),
        )

    @staticmethod
    def defaults(state_file: Path) -> "ServiceConfig":
        state_file = Path(state_file)
        return ServiceConfig(state_file=state_file, inbox_dir=state_file.parent / "inbox")


@dataclass
class ServiceStatus:
    started_at: Optional[float] = None
    last_load: Optional[SnapshotLoadResult] = None
    last_save_ok: Optional[bool] = None
    recent_events: Deque[Dict[str, Any]] = field(default_factory=lambda: deque(maxlen=RECENT_EVENTS_LIMIT))


class MarkerService:
    """Own the session's marker store and drive it from requests and producers."""

    def __init__(self, config: ServiceConfig, channel: Optional[EventChannel] = None):
        self.config = config
        self.store = MarkerStore(PathAliaser(config.home_dir))
        self.state_file = MarkerStateFile(config.state_file, atomic=config.atomic_writes)
        self.events = ClientEventQueue(config.event_queue_size)
        self.notifier = Notifier(self.store, channel if channel is not None else self.events)
        self.status = ServiceStatus()
        self._watch_thread: Optional[threading.Thread] = None
        self._watch_stop = threading.Event()
        self._lock = threading.Lock()
        self._log_lock = threading.Lock()

    @classmethod
    def from_config_file(cls, config_path: Path, channel: Optional[EventChannel] = None) -> "MarkerService":
        return cls(load_config(Path(config_path)), channel)

    # ----------------------- lifecycle -----------------------
    def start(self) -> SnapshotLoadResult:
        """Load persisted marker sets; a missing or unreadable file means an empty store."""
        with self._lock:
            data = self.state_file.read()
            if data is None:
                result = SnapshotLoadResult(ok=True)
            else:
                result = self.store.load_snapshot(data)
                if not result.ok:
                    for error in result.errors:
                        logger.error("Unable to load marker state %s: %s", self.state_file.path, error)
            self.status.started_at = time.time()
            self.status.last_load = result
            self._record_event("load", result.summary())
        logger.info("Loaded %d marker set(s) from %s", len(self.store), self.state_file.path)
        return result

    def shutdown(self, terminated_normally: bool = True) -> Optional[bool]:
        """Persist the store on a normal shutdown; abnormal exits drop it."""
        self.stop_watcher()
        if not terminated_normally:
            logger.info("Abnormal termination; marker state not saved")
            return None
        with self._lock:
            ok = self.state_file.write(self.store.snapshot())
            self.status.last_save_ok = ok
            self._record_event("save", {"ok": ok, "sets": len(self.store)})
        return ok

    # ----------------------- request handlers -----------------------
    def on_tab_closed(self) -> None:
        with self._lock:
            self.store.clear()
            self._notify(AutoSelect.NONE)

    def on_set_active_request(self, name: str) -> None:
        with self._lock:
            self.store.set_active(name)
            self._notify(AutoSelect.NONE)

    def on_clear_active_request(self) -> None:
        with self._lock:
            self.store.clear_active()
            self._notify(AutoSelect.NONE)

    # ----------------------- producers -----------------------
    def publish(self, marker_set: MarkerSet, auto_select: AutoSelect = AutoSelect.SELECT_FIRST) -> None:
        with self._lock:
            self.store.set_active(marker_set)
            self._record_event("publish", {"name": marker_set.name, "markers": len(marker_set)})
            self._notify(auto_select)

    def publish_document(self, data: Any) -> MarkerSet:
        marker_set = marker_set_from_document(data, self.store.aliaser)
        self.publish(marker_set)
        return marker_set

    def publish_file(self, path: Path) -> MarkerSet:
        """Publish a YAML or JSON marker set document written by a tool."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle)
            except (yaml.YAMLError, UnicodeDecodeError) as exc:
                raise MarkerSetError(f"{path}: {exc}") from exc
        try:
            return self.publish_document(data)
        except MarkerSetError as exc:
            raise MarkerSetError(f"{path}: {exc}") from exc

    def _notify(self, auto_select: AutoSelect) -> None:
        event = self.notifier.fire(auto_select)
        logger.debug("Fired %s (auto_select=%d)", event.type, int(auto_select))

    # ----------------------- status & logs -----------------------
    def state_payload(self) -> Dict[str, Any]:
        with self._lock:
            return self.store.state_view()

    def drain_events(self) -> List[ClientEvent]:
        with self._lock:
            return self.events.drain()

    def status_payload(self) -> Dict[str, Any]:
        with self._lock:
            last_load = self.status.last_load
            return {
                "sets": self.store.names(),
                "active_set": self.store.active_set_name or None,
                "state_file": str(self.state_file.path),
                "state_file_exists": self.state_file.exists(),
                "last_load": last_load.summary() if last_load else None,
                "last_save_ok": self.status.last_save_ok,
                "pending_events": self.events.pending(),
                "watching": bool(self._watch_thread and self._watch_thread.is_alive()),
            }

    def recent_logs(self, limit: int = 50) -> List[Dict[str, Any]]:
        if limit <= 0:
            return []
        with self._log_lock:
            events = list(self.status.recent_events)
        return events[-limit:]

    def _record_event(self, event_type: str, payload: Dict[str, Any]):
        event = {"type": event_type, "timestamp": time.time(), "payload": payload}
        with self._log_lock:
            self.status.recent_events.append(event)

    # ----------------------- inbox watcher -----------------------
    def start_watcher(
        self,
        debounce_seconds: float = 0.5,
        observer_factory=None,
        timer_factory=None,
    ):
        if self._watch_thread and self._watch_thread.is_alive():
            return

        self._watch_stop.clear()

        class Handler(FileSystemEventHandler):
            def __init__(self, service: "MarkerService"):
                self.service = service
                self._timer: Optional[threading.Timer] = None
                self._pending: Dict[str, None] = {}
                self._pending_lock = threading.Lock()

            def on_any_event(self, event):  # type: ignore[override]
                if event.is_directory:
                    return
                path = str(getattr(event, "dest_path", "") or event.src_path)
                if not path.endswith(PUBLISHABLE_SUFFIXES):
                    return
                with self._pending_lock:
                    self._pending[path] = None
                    if self._timer:
                        self._timer.cancel()
                    factory = timer_factory or threading.Timer
                    self._timer = factory(debounce_seconds, self._run)
                    self._timer.start()

            def _run(self):
                with self._pending_lock:
                    paths = list(self._pending)
                    self._pending.clear()
                for path in paths:
                    if not Path(path).exists():
                        continue
                    try:
                        self.service.publish_file(Path(path))
                    except (MarkerSetError, OSError) as error:
                        logger.warning("Unable to publish %s: %s", path, error)
                        self.service._record_event("watch_error", {"file": path, "error": str(error)})

        def loop():
            observer_cls = observer_factory or Observer
            observer = observer_cls()
            handler = Handler(self)
            self.config.inbox_dir.mkdir(parents=True, exist_ok=True)
            observer.schedule(handler, str(self.config.inbox_dir), recursive=False)
            observer.start()
            try:
                while not self._watch_stop.is_set():
                    time.sleep(0.1)
            finally:
                observer.stop()
                observer.join()

        self._watch_thread = threading.Thread(target=loop, daemon=True)
        self._watch_thread.start()
        self._record_event("watch_start", {"inbox": str(self.config.inbox_dir)})
        logger.info("Watching %s for marker sets", self.config.inbox_dir)

    def stop_watcher(self):
        if not self._watch_thread:
            return
        self._watch_stop.set()
        self._watch_thread.join(timeout=2)
        self._watch_thread = None
        self._record_event("watch_stop", {})


def load_config(path: Path) -> ServiceConfig:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return ServiceConfig.from_mapping(data, path.parent)
