"""Read-only HTTP surface over the aggregation engine."""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Iterable

from .aggregation import aggregate
from .context import risk_row
from .knowledge_base import KnowledgeBase
from .reconciliation import reconcile, summarize

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 64 * 1024


def aggregate_payload(kb: KnowledgeBase, activity_codes: Iterable[str]) -> dict[str, Any]:
    """Aggregated requirements plus freshly derived risk entries for a selection."""

    codes = [str(code) for code in activity_codes]
    requirements = aggregate(kb, codes)
    entries = reconcile([], kb, codes)
    summary = summarize(entries)
    return {
        "activity_codes": list(requirements.activity_codes),
        "hazard_codes": list(requirements.hazard_codes),
        "control_codes": list(requirements.control_codes),
        "ppe": list(requirements.ppe),
        "permits": list(requirements.permits),
        "risks": [risk_row(entry).model_dump() for entry in entries],
        "summary": summary.__dict__,
    }


class EngineService:
    """HTTP server exposing the knowledge base and aggregation."""

    def __init__(self, kb: KnowledgeBase) -> None:
        self._kb = kb
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int] | None:
        if self._server is None:
            return None
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    def start(self, host: str, port: int) -> None:
        kb = self._kb

        class Handler(BaseHTTPRequestHandler):
            def _send_json(self, status: int, payload: Any) -> None:
                body = json.dumps(payload).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def do_GET(self) -> None:  # noqa: N802
                if self.path == "/health":
                    self._send_json(200, {"ok": True, "activities": len(kb.activities)})
                elif self.path == "/activities":
                    self._send_json(200, [activity.model_dump(mode="json") for activity in kb.active_activities()])
                elif self.path == "/hazards":
                    self._send_json(200, [hazard.model_dump(mode="json") for hazard in kb.active_hazards()])
                else:
                    self._send_json(404, {"error": "not found"})

            def do_POST(self) -> None:  # noqa: N802
                if self.path != "/aggregate":
                    self._send_json(404, {"error": "not found"})
                    return
                try:
                    length = int(self.headers.get("Content-Length") or 0)
                except ValueError:
                    length = -1
                if length < 0:
                    self._send_json(400, {"error": "invalid Content-Length"})
                    return
                if length > MAX_BODY_BYTES:
                    self._send_json(413, {"error": "request body too large"})
                    return
                try:
                    body = json.loads(self.rfile.read(length) or b"{}")
                except ValueError:
                    # JSONDecodeError and UnicodeDecodeError are both ValueErrors.
                    self._send_json(400, {"error": "invalid JSON"})
                    return
                codes = body.get("activity_codes") if isinstance(body, dict) else None
                if not isinstance(codes, list):
                    self._send_json(400, {"error": "activity_codes must be a list"})
                    return
                self._send_json(200, aggregate_payload(kb, codes))

            def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
                logger.debug("http_request", extra={"request": format % args})

        self._server = ThreadingHTTPServer((host, port), Handler)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("service_started", extra={"host": host, "port": self.address[1] if self.address else port})

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None
