"""A minimal HTTP service that listens on a random port, for exercising the runner."""

import argparse
import logging
import random
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote, urlsplit

MIN_PORT = 1024
MAX_PORT = 65534

_log = logging.getLogger(__name__)


class _HelloHandler(BaseHTTPRequestHandler):
    """Answers every request with the path that was hit."""

    def _reply(self) -> None:
        path = unquote(urlsplit(self.path).path)
        body = f"Hello, you've hit {path}\n".encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_OPTIONS = do_HEAD = _reply

    def log_message(self, format, *args) -> None:  # noqa: A002
        """Send access lines to the module logger instead of stderr."""
        _log.debug("%s - %s", self.address_string(), format % args)


def make_server(port) -> ThreadingHTTPServer:
    """Bind an HTTP server on every interface at ``port``."""
    return ThreadingHTTPServer(("", port), _HelloHandler)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Test microservice.")
    parser.add_argument("-i", type=int, default=0, dest="index", help="Index number")
    parser.add_argument("-c", default="", dest="config", help="Configuration directory")
    parser.add_argument("rest", nargs="*", help=argparse.SUPPRESS)
    return parser


def main(argv=None) -> int:
    args = _parser().parse_args(argv)
    print(
        f"This is a microservice-test. Program: {sys.argv[0]}, "
        f"args: -i {args.index} -c {args.config}",
        flush=True,
    )

    port = random.randint(MIN_PORT, MAX_PORT)
    try:
        server = make_server(port)
    except OSError as exc:
        print(f"Failed to listen on port {port}: {exc}", file=sys.stderr)
        return 1

    print(f"Listening on port {port}", flush=True)
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    # Serving only ends abnormally.
    return 1


if __name__ == "__main__":
    sys.exit(main())