#!/usr/bin/env python3
"""
Profile Card Web Server

Serves generated profile cards as SVG and the usage counters as a JSON API.
"""

import http.server
import json
import logging
import urllib.parse
from http import HTTPStatus
from typing import Optional

from .composer import CardComposer
from .counter_store import CounterStore, StorageError
from .store_factory import get_counter_store

logger = logging.getLogger(__name__)

STATS_ACTIONS = ("increment_generations", "increment_visitors", "get_stats")


class CardRequestHandler(http.server.BaseHTTPRequestHandler):
    """Routes card generation and statistics requests."""

    server_version = "ProfileCard/1.0"

    def _send_cors_headers(self):
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def _send_body(self, body: bytes, content_type: str, status: HTTPStatus, cache_control: str,
                   no_cache: bool = False):
        self.send_response(status)
        self.send_header("Content-type", content_type)
        self.send_header("Cache-Control", cache_control)
        if no_cache:
            self.send_header("Pragma", "no-cache")
            self.send_header("Expires", "0")
        self._send_cors_headers()
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json_response(self, data: dict, status: HTTPStatus = HTTPStatus.OK):
        """Send an uncacheable JSON response."""
        self._send_body(json.dumps(data).encode('utf-8'), "application/json", status,
                        "no-store, no-cache, must-revalidate, max-age=0", no_cache=True)

    def _send_json_error(self, message: str, status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR):
        """Send a JSON error response."""
        self._send_json_response({"success": False, "error": message}, status)

    def do_OPTIONS(self):
        """Answer CORS preflight requests."""
        self.send_response(HTTPStatus.NO_CONTENT)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):
        """Handle GET requests."""
        parsed_path = urllib.parse.urlparse(self.path)
        path = parsed_path.path.rstrip("/")
        query_params = urllib.parse.parse_qs(parsed_path.query, keep_blank_values=True)

        if path == "/api/generate":
            self.send_card(query_params.get('username', [''])[0])
        elif path == "/api/stats":
            action = query_params.get('action', ['get_stats'])[0]
            self.send_stats(action, debug='debug' in query_params)
        else:
            self.send_error(HTTPStatus.NOT_FOUND, "Endpoint not found")

    def send_card(self, username: str):
        """Serve the SVG card for a GitHub username."""
        logger.info(f"Card requested for {username!r}")
        svg_content = self.server.composer.compose_card(username)
        self._send_body(svg_content.encode('utf-8'), "image/svg+xml; charset=utf-8", HTTPStatus.OK,
                        "public, max-age=3600")

    def send_stats(self, action: str, debug: bool = False):
        """Run a statistics action and send its JSON result."""
        store: CounterStore = self.server.store
        if action not in STATS_ACTIONS:
            action = "get_stats"

        try:
            if action == "increment_generations":
                result = store.increment_generations()
            elif action == "increment_visitors":
                result = store.increment_visitors()
            else:
                result = store.get_stats()
        except StorageError as e:
            logger.error(f"Statistics action {action} failed: {e}")
            self._send_json_error(str(e))
            return

        if debug:
            result["debug"] = store.debug_info()
        self._send_json_response(result)

    def log_message(self, format, *args):
        logger.info("%s - %s" % (self.address_string(), format % args))


def create_server(port: int = 8000, host: str = "", composer: Optional[CardComposer] = None,
                  store: Optional[CounterStore] = None) -> http.server.ThreadingHTTPServer:
    """Build a threaded server wired to a composer and a counter store."""
    httpd = http.server.ThreadingHTTPServer((host, port), CardRequestHandler)
    httpd.composer = composer or CardComposer()
    httpd.store = store or get_counter_store()
    return httpd


def run_server(port: int = 8000):
    """
    Run the profile card web server.

    Args:
        port: Port to listen on (default: 8000)
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    with create_server(port) as httpd:
        logger.info(f"Starting server on port {port}")
        logger.info(f"Cards: http://localhost:{port}/api/generate?username=<login>")
        logger.info(f"Statistics file: {httpd.store.path}")

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped by user")


if __name__ == "__main__":
    run_server()
