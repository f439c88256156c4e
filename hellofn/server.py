from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse, parse_qs

from . import __version__
from .runtime import FunctionSpec, discover_functions, invoke_function, write_log
from .utils import fn_dir, route_prefix


class HellofnHandler(BaseHTTPRequestHandler):
    server_version = f"hellofn/{__version__}"

    def log_message(self, format: str, *args) -> None:
        # Suppress access logs when server.quiet is True
        if getattr(self.server, "quiet", False):  # type: ignore[attr-defined]
            return
        return super().log_message(format, *args)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length", 0))
        if length:
            return self.rfile.read(length)
        return b""

    def _send(self, status: int, headers: Dict[str, str], body: bytes):
        self.send_response(status)
        for k, v in headers.items():
            if k.lower() == "content-length":
                continue
            self.send_header(k, v)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)

    def _match(self, path: str) -> Optional[FunctionSpec]:
        prefix = self.server.route_prefix  # type: ignore[attr-defined]
        route = path.strip("/")
        if prefix:
            if not route.lower().startswith(prefix.lower() + "/"):
                return None
            route = route[len(prefix) + 1:]
        for spec in self.server.functions:  # type: ignore[attr-defined]
            if spec.route.strip("/").lower() == route.lower():
                return spec
        return None

    def _handle(self):
        parsed = urlparse(self.path)
        spec = self._match(parsed.path)
        if spec is None:
            self._send(404, {"Content-Type": "text/plain"}, b"Not Found")
            return
        if not spec.allows(self.command):
            self._send(405, {"Content-Type": "text/plain", "Allow": ", ".join(m.upper() for m in spec.methods)}, b"Method Not Allowed")
            return

        body_bytes = self._read_body()
        host, port = self.server.server_address[:2]
        event = {
            "method": self.command,
            "url": f"http://{host}:{port}{self.path}",
            "query": {k: v[-1] for k, v in parse_qs(parsed.query, keep_blank_values=True).items()},
            "headers": {k: v for k, v in self.headers.items()},
            "body": body_bytes,
        }

        try:
            status, out_headers, out_body = invoke_function(spec, fn_dir(self.server.root, spec.name), event)  # type: ignore[attr-defined]
        except Exception as e:
            status, out_headers, out_body = 500, {"Content-Type": "text/plain"}, f"Error: {e}".encode()

        if self.server.request_logs:  # type: ignore[attr-defined]
            try:
                write_log(spec.name, {
                    "request": {**event, "body": body_bytes.decode(errors="ignore")},
                    "response": {
                        "status": status,
                        "headers": out_headers,
                        "bodyPreview": out_body[:256].decode(errors="ignore"),
                    },
                })
            except OSError:
                pass

        self._send(status, out_headers, out_body)

    def do_GET(self):
        self._handle()

    def do_POST(self):
        self._handle()

    def do_PUT(self):
        self._handle()

    def do_DELETE(self):
        self._handle()

    def do_PATCH(self):
        self._handle()

    def do_HEAD(self):
        self._handle()

    def do_OPTIONS(self):
        self._handle()


def make_server(root: Path, host: str = "127.0.0.1", port: int = 7071, quiet: bool = False, request_logs: bool = True) -> ThreadingHTTPServer:
    httpd = ThreadingHTTPServer((host, port), HellofnHandler)
    # Attach host state so the handler can route, log and stay quiet
    setattr(httpd, "root", Path(root))
    setattr(httpd, "functions", discover_functions(root))
    setattr(httpd, "route_prefix", route_prefix(root))
    setattr(httpd, "quiet", bool(quiet))
    setattr(httpd, "request_logs", bool(request_logs))
    return httpd


def serve(root: Path, host: str = "127.0.0.1", port: int = 7071, quiet: bool = False, request_logs: bool = True):
    httpd = make_server(root, host=host, port=port, quiet=quiet, request_logs=request_logs)
    print(f"hellofn host listening on http://{host}:{port}")
    for spec in httpd.functions:  # type: ignore[attr-defined]
        prefix = f"/{httpd.route_prefix}" if httpd.route_prefix else ""  # type: ignore[attr-defined]
        print(f"  {spec.name}: [{','.join(m.upper() for m in spec.methods)}] http://{host}:{port}{prefix}/{spec.route}")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.server_close()
