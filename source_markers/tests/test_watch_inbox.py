import time
from pathlib import Path
from types import MethodType

from source_markers.service import MarkerService, ServiceConfig


class FakeObserver:
    def __init__(self):
        self.handler = None
        self.path = None

    def schedule(self, handler, path, recursive):
        self.handler = handler
        self.path = path

    def start(self):
        return None

    def stop(self):
        return None

    def join(self):
        return None


class FakeTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def start(self):
        return None

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


def make_event(path: Path, is_directory: bool = False):
    return type("Evt", (), {"is_directory": is_directory, "src_path": str(path), "dest_path": ""})


def start_fake_watcher(service: MarkerService):
    observer = FakeObserver()
    timers = []

    def timer_factory(interval, callback):
        timer = FakeTimer(interval, callback)
        timers.append(timer)
        return timer

    service.start_watcher(debounce_seconds=0.01, observer_factory=lambda: observer, timer_factory=timer_factory)
    for _ in range(50):
        if observer.handler is not None:
            break
        time.sleep(0.01)
    assert observer.handler is not None
    return observer, timers


def test_watch_debounces_and_publishes_once(tmp_path):
    service = MarkerService(ServiceConfig.defaults(tmp_path / "db.json"))
    inbox = service.config.inbox_dir
    calls = []

    def fake_publish_file(self, path):
        calls.append(Path(path).name)

    service.publish_file = MethodType(fake_publish_file, service)
    observer, timers = start_fake_watcher(service)
    assert observer.path == str(inbox)

    document = inbox / "lint.yaml"
    document.write_text("name: Lint\nmarkers: []\n", encoding="utf-8")
    observer.handler.on_any_event(make_event(document))
    observer.handler.on_any_event(make_event(document))
    observer.handler.on_any_event(make_event(inbox, is_directory=True))
    observer.handler.on_any_event(make_event(inbox / "notes.txt"))

    assert len(timers) == 2
    assert timers[0].cancelled
    timers[-1].fire()
    service.stop_watcher()

    assert calls == ["lint.yaml"]


def test_watch_records_bad_documents(tmp_path):
    service = MarkerService(ServiceConfig.defaults(tmp_path / "db.json"))
    inbox = service.config.inbox_dir
    observer, timers = start_fake_watcher(service)

    good = inbox / "build.json"
    good.write_text('{"name": "Build", "markers": [{"type": 1, "path": "/x.c", "line": 1, "column": 1}]}', encoding="utf-8")
    bad = inbox / "broken.yaml"
    bad.write_text("name: [unterminated\n", encoding="utf-8")
    observer.handler.on_any_event(make_event(good))
    observer.handler.on_any_event(make_event(bad))
    timers[-1].fire()
    service.stop_watcher()

    assert service.store.names() == ["Build"]
    errors = [event for event in service.recent_logs() if event["type"] == "watch_error"]
    assert len(errors) == 1
    assert errors[0]["payload"]["file"] == str(bad)
