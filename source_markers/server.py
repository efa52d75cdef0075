"""Flask application exposing the marker request surface."""
from __future__ import annotations

from flask import Flask, jsonify, request

from .enginelib.codec import MarkerSetError
from .service import MarkerService


def _params() -> list:
    payload = request.get_json(silent=True)
    if payload is None:
        return []
    if not isinstance(payload, dict):
        raise ValueError("request body must be an object")
    params = payload.get("params", [])
    if not isinstance(params, list):
        raise ValueError("params must be an array")
    return params


def create_app(service: MarkerService) -> Flask:
    app = Flask(__name__)
    app.config["MARKER_SERVICE"] = service

    def markers_tab_closed():
        service.on_tab_closed()

    def update_active_marker_set():
        params = _params()
        if len(params) != 1 or not isinstance(params[0], str):
            raise ValueError("expected a single string parameter: the marker set name")
        service.on_set_active_request(params[0])

    def clear_active_marker_set():
        service.on_clear_active_request()

    rpc_methods = {
        "markers_tab_closed": markers_tab_closed,
        "update_active_marker_set": update_active_marker_set,
        "clear_active_marker_set": clear_active_marker_set,
    }

    @app.post("/rpc/<method>")
    def rpc(method: str):
        handler = rpc_methods.get(method)
        if handler is None:
            return jsonify({"error": f"unknown method: {method}"}), 404
        try:
            handler()
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify({"result": None})

    @app.get("/api/state")
    def api_state():
        return jsonify(service.state_payload())

    @app.get("/api/events")
    def api_events():
        return jsonify([event.to_json() for event in service.drain_events()])

    @app.post("/api/publish")
    def api_publish():
        payload = request.get_json(silent=True)
        if payload is None:
            return jsonify({"error": "a JSON marker set is required"}), 400
        try:
            marker_set = service.publish_document(payload)
        except MarkerSetError as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify({"name": marker_set.name, "markers": len(marker_set)})

    @app.get("/api/status")
    def api_status():
        return jsonify(service.status_payload())

    @app.get("/api/logs")
    def api_logs():
        limit = request.args.get("limit", 50, type=int)
        return jsonify(service.recent_logs(limit))

    return app
