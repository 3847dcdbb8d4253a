"""REST API for Cloud Saves.

Exposes the service over HTTP for any frontend to consume. Requests are
handled on server threads and bridged onto the service's event loop.

Endpoints:
    GET    /api/info                     - Plugin metadata
    GET    /api/config                   - Current config (token masked)
    POST   /api/config                   - Save config
    POST   /api/authorize                - Authorize against the remote
    GET    /api/status                   - Repository status
    GET    /api/saves                    - List saves
    GET    /api/saves/diff?tag1=&tag2=   - Files changed between two refs
    POST   /api/saves                    - Create a save
    POST   /api/saves/load               - Load a save
    POST   /api/saves/:tag/overwrite     - Overwrite a save
    PUT    /api/saves/:tag               - Rename a save / edit description
    DELETE /api/saves/:tag               - Delete a save
    POST   /api/stash/apply              - Apply the interrupted-work stash
    POST   /api/stash/discard            - Discard the interrupted-work stash
    POST   /api/initialize               - Force reinitialize the repository
    POST   /api/update/check-and-pull    - Self-update
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine
from http.server import BaseHTTPRequestHandler
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from cloudsaves.results import BUSY, INVALID, UNAUTHORIZED, UNEXPECTED, OperationResult
from cloudsaves.service import CloudSavesService

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    INVALID: 400,
    UNAUTHORIZED: 401,
    BUSY: 409,
    UNEXPECTED: 500,
}


def status_for(result: OperationResult) -> int:
    """HTTP status for an operation result."""
    if result.success:
        return 200
    return STATUS_BY_CODE.get(result.code or "", 200)


def _field(body: dict[str, Any], *names: str) -> Any:
    """First present value among alternative spellings of a field."""
    for name in names:
        if body.get(name) is not None:
            return body[name]
    return None


class CloudSavesAPIHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the Cloud Saves REST API."""

    # Will be set by server
    service: CloudSavesService | None = None
    loop: asyncio.AbstractEventLoop | None = None

    def _call(self, coro: Coroutine[Any, Any, OperationResult]) -> OperationResult:
        """Run a service coroutine on the service loop and wait for it."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    def _send_json(self, data: Any, status: int = 200) -> None:
        """Send JSON response."""
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def _send_result(self, result: OperationResult) -> None:
        self._send_json(result.to_dict(), status_for(result))

    def _send_error(self, status: int, message: str) -> None:
        """Send error response."""
        self._send_json({"success": False, "message": message}, status)

    def _get_query_params(self) -> dict[str, str]:
        """Parse query parameters."""
        parsed = urlparse(self.path)
        params = parse_qs(parsed.query)
        return {k: v[0] for k, v in params.items()}

    def _get_path_parts(self) -> list[str]:
        """Get path parts after /api/."""
        parsed = urlparse(self.path)
        path = parsed.path.strip("/")
        if path == "api":
            path = ""
        elif path.startswith("api/"):
            path = path[4:]
        return [unquote(p) for p in path.split("/")] if path else []

    def _read_body(self) -> dict[str, Any] | None:
        """Parse the JSON request body; sends 400 and returns None if invalid."""
        try:
            content_length = int(self.headers.get("Content-Length", 0))
            raw = self.rfile.read(content_length).decode("utf-8") if content_length else ""
            body = json.loads(raw) if raw else {}
        except (json.JSONDecodeError, ValueError) as e:
            self._send_error(400, f"Invalid JSON: {e}")
            return None
        if not isinstance(body, dict):
            self._send_error(400, "Request body must be a JSON object")
            return None
        return body

    def do_OPTIONS(self) -> None:  # noqa: N802 - required by BaseHTTPRequestHandler
        """Handle CORS preflight."""
        self.send_response(200)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def _dispatch(self, route: Callable[[], None]) -> None:
        """Run a route; exceptions become a 500 result instead of a dropped connection."""
        try:
            route()
        except Exception as e:
            logger.exception(f"{self.command} {self.path} failed")
            result = OperationResult.fail(f"Unexpected error: {e}", code=UNEXPECTED)
            self._send_result(result)

    def do_GET(self) -> None:  # noqa: N802
        self._dispatch(self._handle_get)

    def do_POST(self) -> None:  # noqa: N802
        self._dispatch(self._handle_post)

    def do_PUT(self) -> None:  # noqa: N802
        self._dispatch(self._handle_put)

    def do_DELETE(self) -> None:  # noqa: N802
        self._dispatch(self._handle_delete)

    def _handle_get(self) -> None:
        """Handle GET requests."""
        parts = self._get_path_parts()
        params = self._get_query_params()

        if parts == ["info"] or not parts:
            self._send_result(self.service.info())
        elif parts == ["config"]:
            self._send_result(self.service.get_config())
        elif parts == ["status"]:
            self._send_result(self._call(self.service.get_status()))
        elif parts == ["saves"]:
            self._send_result(self._call(self.service.list_saves()))
        elif parts == ["saves", "diff"]:
            self._send_result(
                self._call(self.service.diff_saves(params.get("tag1", ""), params.get("tag2", "")))
            )
        else:
            self._send_error(404, f"Unknown resource: {'/'.join(parts)}")

    def _handle_post(self) -> None:
        """Handle POST requests."""
        parts = self._get_path_parts()
        body = self._read_body()
        if body is None:
            return

        if parts == ["config"]:
            self._send_result(self._call(self.service.save_config(**body)))
        elif parts == ["authorize"]:
            self._send_result(self._call(self.service.authorize(body.get("branch"))))
        elif parts == ["saves"]:
            self._send_result(
                self._call(self.service.create_save(body.get("name", ""), body.get("description")))
            )
        elif parts == ["saves", "load"]:
            tag = _field(body, "tag", "tag_name", "tagName") or ""
            self._send_result(self._call(self.service.load_save(tag)))
        elif len(parts) == 3 and parts[0] == "saves" and parts[2] == "overwrite":
            self._send_result(self._call(self.service.overwrite_save(parts[1])))
        elif parts == ["stash", "apply"]:
            self._send_result(self._call(self.service.apply_temp_stash()))
        elif parts == ["stash", "discard"]:
            self._send_result(self._call(self.service.discard_temp_stash()))
        elif parts == ["initialize"]:
            self._send_result(self._call(self.service.force_reinitialize()))
        elif parts == ["update", "check-and-pull"]:
            self._send_result(self._call(self.service.check_for_update()))
        else:
            self._send_error(404, f"Cannot POST to: {'/'.join(parts)}")

    def _handle_put(self) -> None:
        """Handle PUT requests."""
        parts = self._get_path_parts()

        if len(parts) == 2 and parts[0] == "saves":
            body = self._read_body()
            if body is None:
                return
            new_name = _field(body, "new_name", "newName") or ""
            self._send_result(
                self._call(self.service.rename_save(parts[1], new_name, body.get("description")))
            )
        else:
            self._send_error(404, f"Cannot PUT to: {'/'.join(parts)}")

    def _handle_delete(self) -> None:
        """Handle DELETE requests."""
        parts = self._get_path_parts()

        if len(parts) == 2 and parts[0] == "saves":
            self._send_result(self._call(self.service.delete_save(parts[1])))
        else:
            self._send_error(404, f"Cannot DELETE: {'/'.join(parts)}")

    def log_message(self, format: str, *args) -> None:
        """Suppress default logging, use our logger."""
        logger.debug(f"{self.address_string()} - {format % args}")
