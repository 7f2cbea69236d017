import json
import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .config import PayConfig
from .health import get_health_status
from .payments import PaymentClient, PaymentError
from .payments.chains import build_providers
from .payments.exceptions import NotFoundError
from .tools import PaymentTools

logger = logging.getLogger(__name__)

TOOLS_PREFIX = "/tools/"


class PaymentToolServer:
    """Serves the payment tools as JSON over HTTP on a background thread."""

    def __init__(
        self,
        config: PayConfig,
        tools: Optional[PaymentTools] = None,
        server_shutdown_timeout: float = 1.0,
    ):
        self._config = config
        self._server_shutdown_timeout = server_shutdown_timeout
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        if tools is None:
            client = PaymentClient(build_providers(config), config.default_chain)
            tools = PaymentTools(client)
        self._tools = tools

    def start(self) -> None:
        if self._httpd:
            raise RuntimeError("Server already running")

        handler_cls = self._create_handler_class()
        address = (self._config.listen_host, self._config.listen_port)
        self._httpd = ThreadingHTTPServer(address, handler_cls)
        logger.info("Payment tool server listening on %s:%s", *self._httpd.server_address[:2])

        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if not self._httpd:
            return

        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread:
            self._thread.join(timeout=self._server_shutdown_timeout)
        self._httpd = None
        self._thread = None
        logger.info("Payment tool server stopped")

    @property
    def tools(self) -> PaymentTools:
        return self._tools

    @property
    def server_address(self):
        if not self._httpd:
            return None
        return self._httpd.server_address

    # Internal helpers -----------------------------------------------------

    def _create_handler_class(self):
        server = self

        class RequestHandler(BaseHTTPRequestHandler):
            protocol_version = "HTTP/1.1"
            _max_log_payload = 2048

            def do_GET(self):  # noqa: N802
                path = self._normalized_path(self.path)
                if path == "/health":
                    self._send_json(
                        HTTPStatus.OK,
                        get_health_status(server._tools, server._config.network),
                    )
                elif path in ("/tools", "/tools/"):
                    self._send_json(
                        HTTPStatus.OK, {"tools": server._tools.available_tools()}
                    )
                else:
                    self._send_json(HTTPStatus.NOT_FOUND, {"error": "Endpoint not found"})

            def do_POST(self):  # noqa: N802
                path = self._normalized_path(self.path)
                if not path.startswith(TOOLS_PREFIX):
                    self._send_json(HTTPStatus.NOT_FOUND, {"error": "Endpoint not found"})
                    return
                self._handle_tool(path[len(TOOLS_PREFIX):])

            def log_message(self, format_: str, *args: Any) -> None:
                logger.debug("usdc_pay_http: " + format_, *args)

            def _handle_tool(self, name: str) -> None:
                try:
                    payload = self._parse_body()
                except ValueError as exc:
                    self._send_json(
                        HTTPStatus.BAD_REQUEST,
                        {"error": f"Invalid JSON payload: {exc}"},
                    )
                    return

                logger.info(
                    "Incoming tool call name=%s headers=%s body=%s",
                    name,
                    self._sanitize_headers(self.headers),
                    self._truncate_for_log(self._redact_payload(payload)),
                )

                try:
                    result = server._tools.invoke(name, payload)
                    self._send_json(HTTPStatus.OK, result)
                except NotFoundError as exc:
                    self._send_json(HTTPStatus.NOT_FOUND, self._error_payload(exc))
                except PaymentError as exc:
                    self._send_json(HTTPStatus.BAD_REQUEST, self._error_payload(exc))
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Unhandled error processing tool %s: %s", name, exc, exc_info=True)
                    self._send_json(
                        HTTPStatus.INTERNAL_SERVER_ERROR,
                        {"error": "Internal server error", "isError": True},
                    )

            def _parse_body(self) -> Dict[str, Any]:
                length = int(self.headers.get("Content-Length") or "0")
                if length == 0:
                    return {}
                raw_body = self.rfile.read(length).decode("utf-8")
                if not raw_body:
                    return {}
                body = json.loads(raw_body)
                if not isinstance(body, dict):
                    raise ValueError("body must be a JSON object")
                return body

            def _send_json(self, status: HTTPStatus, payload: Dict[str, Any]) -> None:
                logger.debug(
                    "Outgoing response status=%s path=%s body=%s",
                    status.value,
                    self.path,
                    self._truncate_for_log(payload),
                )
                body = json.dumps(payload).encode("utf-8")
                self.send_response(status.value)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _truncate_for_log(self, data: Any) -> str:
                """
                Reduce size of logged payloads to keep logs readable.
                """
                try:
                    text = json.dumps(data)
                except (TypeError, ValueError):
                    text = str(data)
                if len(text) <= self._max_log_payload:
                    return text
                return text[: self._max_log_payload] + "...<truncated>"

            @staticmethod
            def _redact_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
                return {
                    key: "***redacted***" if "key" in key.lower() or "secret" in key.lower() else value
                    for key, value in payload.items()
                }

            @staticmethod
            def _sanitize_headers(headers) -> Dict[str, str]:
                masked_headers: Dict[str, str] = {}
                for key, value in headers.items():
                    if key.lower() in {"authorization", "proxy-authorization"}:
                        masked_headers[key] = "***redacted***"
                    else:
                        masked_headers[key] = value
                return masked_headers

            @staticmethod
            def _error_payload(exc: Exception) -> Dict[str, Any]:
                return {"error": str(exc), "kind": type(exc).__name__, "isError": True}

            @staticmethod
            def _normalized_path(path: str) -> str:
                return urlparse(path).path

        return RequestHandler
