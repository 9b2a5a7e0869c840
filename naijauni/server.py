"""HTTP server that answers lookups of Nigerian universities."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from os import PathLike
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

from .models import University

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = "json/uni.json"
DEFAULT_PORT = 8080
DEFAULT_ALLOWED_ORIGIN = "*"
ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def load_universities(path: str | PathLike[str] = DEFAULT_DATA_PATH) -> list[University]:
    """Read the list of universities from a JSON file.

    Missing or null fields become empty strings.
    """
    data = json.loads(Path(path).read_bytes())
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array of universities, not {type(data).__name__}")
    universities = []
    for item in data:
        if item is None:
            item = {}
        if not isinstance(item, dict):
            raise ValueError(f"expected a JSON object, not {type(item).__name__}")
        try:
            university = University.from_dict(item)
        except TypeError as err:
            raise ValueError(str(err)) from err
        universities.append(
            University(
                name=university.name or "",
                abbreviation=university.abbreviation or "",
                website_link=university.website_link or "",
            )
        )
    return universities


def find_by_name(universities: Iterable[University], name: str) -> University | None:
    """Return the first university whose name is exactly ``name``."""
    return next((uni for uni in universities if uni.name == name), None)


def find_by_abbreviation(
    universities: Iterable[University], abbreviation: str
) -> University | None:
    """Return the first university whose abbreviation is exactly ``abbreviation``."""
    return next((uni for uni in universities if uni.abbreviation == abbreviation), None)


def _wire(university: University) -> dict[str, str]:
    return {
        "name": university.name or "",
        "abbreviation": university.abbreviation or "",
        "website_link": university.website_link or "",
    }


def _encode(value: Any) -> bytes:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    for char, escape in _JSON_ESCAPES.items():
        text = text.replace(char, escape)
    return (text + "\n").encode("utf-8")


def _decode_name_request(raw: bytes) -> str:
    """Return the ``name`` of a search request body, matching keys case-insensitively."""
    text = raw.decode("utf-8").lstrip(" \t\r\n")
    if not text:
        raise ValueError("EOF")
    value, _ = json.JSONDecoder().raw_decode(text)
    if value is None:
        return ""
    if not isinstance(value, dict):
        raise ValueError(f"cannot decode {type(value).__name__} into a request")
    name = ""
    for key, item in value.items():
        if key.lower() != "name" or item is None:
            continue
        if not isinstance(item, str):
            raise ValueError(f"cannot decode {type(item).__name__} into the name field")
        name = item
    return name


class _UniversityServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], data_path: str | PathLike[str]) -> None:
        self.data_path = data_path
        self.allowed_origin = DEFAULT_ALLOWED_ORIGIN
        super().__init__(address, UniversityRequestHandler)


class UniversityRequestHandler(BaseHTTPRequestHandler):
    """Serves the full list, a search by name and a search by abbreviation."""

    server: _UniversityServer

    def _handle(self) -> None:
        if self.command == "OPTIONS":
            self._send(200, b"")
            return
        path = urlsplit(self.path).path
        routes = {"/search": self._search, "/searchab": self._search_by_abbreviation}
        routes.get(path, self._list_all)()

    do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = do_OPTIONS = _handle

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)

    def _send(self, status: int, body: bytes, content_type: str | None = None) -> None:
        self.send_response(status)
        self.send_header("Access-Control-Allow-Origin", self.server.allowed_origin)
        self.send_header("Access-Control-Allow-Methods", ALLOWED_METHODS)
        self.send_header("Access-Control-Allow-Headers", ALLOWED_HEADERS)
        if content_type:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD" and body:
            self.wfile.write(body)

    def _send_json(self, value: Any) -> None:
        self._send(200, _encode(value), "application/json")

    def _error(self, message: str, code: int) -> None:
        self._send(code, _encode({"message": message, "code": code}), "application/json")

    def _universities(self) -> list[University] | None:
        try:
            return load_universities(self.server.data_path)
        except (OSError, ValueError) as err:
            logger.error("an error occurred: %s", err)
            self._error("Failed to load universities", 500)
            return None

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        return self.rfile.read(length) if length > 0 else b""

    def _list_all(self) -> None:
        if self.command != "GET":
            self._error("Invalid request method", 405)
            return
        universities = self._universities()
        if universities is None:
            return
        try:
            body = _encode([_wire(uni) for uni in universities])
        except (TypeError, ValueError):
            self._error("Failed to encode response", 500)
            return
        self._send(200, body, "application/json")

    def _search(self) -> None:
        if self.command != "GET":
            self._error("Invalid request method", 405)
            return
        try:
            name = _decode_name_request(self._read_body())
        except ValueError:
            self._error("Failed to decode request", 400)
            return
        logger.debug("search by name: %r", name)
        universities = self._universities()
        if universities is None:
            return
        found = find_by_name(universities, name)
        if found is None:
            self._send(200, b"")
            return
        self._send_json(_wire(found))

    def _search_by_abbreviation(self) -> None:
        if self.command != "GET":
            self._error("Method not allowed", 405)
            return
        query = parse_qs(urlsplit(self.path).query, keep_blank_values=True)
        abbreviation = query.get("abbreviation", [""])[0]
        logger.debug("search by abbreviation: %r", abbreviation)
        if not abbreviation:
            self._error("Abbreviation is required", 400)
            return
        universities = self._universities()
        if universities is None:
            return
        found = find_by_abbreviation(universities, abbreviation)
        if found is None:
            self._error("University not found", 404)
            return
        self._send_json(_wire(found))


def create_server(
    host: str = "",
    port: int = DEFAULT_PORT,
    data_path: str | PathLike[str] = DEFAULT_DATA_PATH,
) -> ThreadingHTTPServer:
    """Bind a server that answers from the universities in ``data_path``."""
    return _UniversityServer((host, port), data_path)


def main(argv: list[str] | None = None) -> int:
    """Run the universities server until interrupted."""
    parser = argparse.ArgumentParser(prog="naijauni", description=__doc__)
    parser.add_argument("--host", default="", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--data", default=DEFAULT_DATA_PATH, help="JSON file of universities")
    parser.add_argument(
        "--allow-origin",
        default=DEFAULT_ALLOWED_ORIGIN,
        help="value of the Access-Control-Allow-Origin header",
    )
    args = parser.parse_args(argv)

    try:
        load_universities(args.data)
    except (OSError, ValueError) as err:
        print(f"an error occurred: {err}", file=sys.stderr)
        return 1

    server = create_server(args.host, args.port, args.data)
    server.allowed_origin = args.allow_origin  # type: ignore[attr-defined]
    print(f"Server started at {args.host}:{server.server_address[1]}")
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0