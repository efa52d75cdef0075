"""Command line interface for source markers."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .enginelib.codec import MarkerSetError
from .service import MarkerService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Source marker state manager")
    parser.add_argument("-c", "--config", required=True, help="Path to source_markers.yaml")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Serve the marker request API")
    sub.add_parser("show", help="Print the client state view")
    publish = sub.add_parser("publish", help="Publish marker set files (YAML or JSON)")
    publish.add_argument("files", nargs="+", type=Path)
    select = sub.add_parser("select", help="Make a marker set active")
    select.add_argument("name")
    sub.add_parser("clear-active", help="Remove the active marker set")
    sub.add_parser("clear", help="Remove all marker sets")
    return parser


def _load_service(args: argparse.Namespace) -> MarkerService:
    service = MarkerService.from_config_file(Path(args.config))
    logging.basicConfig(
        level=(args.log_level or service.config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    service.start()
    return service


def _print_state(service: MarkerService) -> None:
    print(json.dumps(service.state_payload(), indent=2))


def cmd_serve(args: argparse.Namespace) -> int:
    from .server import create_app

    service = _load_service(args)
    if service.config.watch:
        service.start_watcher(service.config.debounce_seconds)
    app = create_app(service)
    try:
        app.run(host=service.config.host, port=service.config.port, debug=False)
    finally:
        service.shutdown(terminated_normally=True)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    service = _load_service(args)
    _print_state(service)
    return 0


def cmd_publish(args: argparse.Namespace) -> int:
    service = _load_service(args)
    failures = 0
    for path in args.files:
        try:
            marker_set = service.publish_file(path)
        except (MarkerSetError, OSError) as exc:
            logger.error("Unable to publish %s: %s", path, exc)
            failures += 1
            continue
        print(f"published {marker_set.name} ({len(marker_set)} markers)")
    ok = service.shutdown(terminated_normally=True)
    return 0 if ok and not failures else 1


def cmd_select(args: argparse.Namespace) -> int:
    service = _load_service(args)
    found = args.name in service.store
    service.on_set_active_request(args.name)
    if not found:
        logger.warning("No marker set named %r; selection unchanged", args.name)
    service.shutdown(terminated_normally=True)
    _print_state(service)
    return 0 if found else 1


def cmd_clear_active(args: argparse.Namespace) -> int:
    service = _load_service(args)
    service.on_clear_active_request()
    service.shutdown(terminated_normally=True)
    _print_state(service)
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    service = _load_service(args)
    service.on_tab_closed()
    service.shutdown(terminated_normally=True)
    _print_state(service)
    return 0


COMMAND_HANDLERS = {
    "serve": cmd_serve,
    "show": cmd_show,
    "publish": cmd_publish,
    "select": cmd_select,
    "clear-active": cmd_clear_active,
    "clear": cmd_clear,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = COMMAND_HANDLERS[args.command]
    return handler(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
