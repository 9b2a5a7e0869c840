"""HTTP plumbing for the universities API: request building, sending and decoding."""

from __future__ import annotations

import dataclasses
import datetime as _dt
import io
import json
import logging
import math
import os
import re
import secrets
import struct
import tempfile
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Iterator, Mapping, MutableMapping, MutableSequence
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Any, Union, get_args, get_origin
from urllib.parse import parse_qsl, quote_plus, urlsplit, urlunsplit

from .configuration import Configuration
from .nullable import Nullable

logger = logging.getLogger(__name__)

JSON_CHECK = re.compile(r"(?i:(?:application|text)/(?:[^;]+\+)?json)")
XML_CHECK = re.compile(r"(?i:(?:application|text)/(?:[^;]+\+)?xml)")

_TEXT_PLAIN = "text/plain; charset=utf-8"
_JSON_UTF8 = "application/json; charset=utf-8"


class APIError(Exception):
    """An error reported by the API or raised while handling its reply."""

    def __init__(self, message: str, body: bytes = b"", model: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.body = body
        self.model = model

    def __str__(self) -> str:
        return self.message


@dataclass
class HTTPResponse:
    """A reply received from the server."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def status(self) -> str:
        """The status line text, such as ``"200 OK"``."""
        try:
            phrase = HTTPStatus(self.status_code).phrase
        except ValueError:
            phrase = ""
        return f"{self.status_code} {phrase}".rstrip()

    def header(self, name: str, default: str = "") -> str:
        """Return a header value, matching the name case-insensitively."""
        return _header_value(self.headers, name, default)


@dataclass
class PreparedRequest:
    """A request ready to be sent."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    context: Mapping[Any, Any] | None = None


def _header_value(headers: Mapping[str, str], name: str, default: str = "") -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return default


def contains_fold(haystack: Iterable[str], needle: str) -> bool:
    """Return whether ``needle`` is in ``haystack``, ignoring case."""
    folded = needle.casefold()
    return any(item.casefold() == folded for item in haystack)


def select_header_content_type(content_types: list[str]) -> str:
    """Pick the Content-Type to send, preferring JSON."""
    if not content_types:
        return ""
    if contains_fold(content_types, "application/json"):
        return "application/json"
    return content_types[0]


def select_header_accept(accepts: list[str]) -> str:
    """Build the Accept header, preferring JSON."""
    if not accepts:
        return ""
    if contains_fold(accepts, "application/json"):
        return "application/json"
    return ",".join(accepts)


def _format_float32(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    try:
        single = struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        single = math.inf if value > 0 else -math.inf
    if math.isinf(single):
        return "+Inf" if single > 0 else "-Inf"
    if single == 0:
        return "-0" if math.copysign(1.0, single) < 0 else "0"
    digits = 9
    text = f"{single:.8e}"
    for candidate in range(1, 10):
        attempt = f"{single:.{candidate - 1}e}"
        if struct.unpack("f", struct.pack("f", float(attempt)))[0] == single:
            digits, text = candidate, attempt
            break
    exponent = int(text.split("e")[1])
    point = exponent + 1
    precision = 6
    if precision > digits and digits >= point:
        precision = digits
    if exponent < -4 or exponent >= precision:
        return text
    return f"{single:.{max(digits - point, 0)}f}"


def _place(params: Any, key: str, value: str, collection_type: str) -> None:
    if isinstance(params, MutableMapping):
        params[key] = value
        return
    if not isinstance(params, MutableSequence):
        raise TypeError(f"cannot add parameters to {type(params).__name__}")
    existing = [item for name, item in params if name == key]
    if collection_type == "csv" and existing and existing[0] != "":
        merged = existing[0] + "," + value
        first = next(i for i, (name, _) in enumerate(params) if name == key)
        kept = [(name, item) for name, item in params if name != key]
        kept.insert(first, (key, merged))
        params[:] = kept
    else:
        params.append((key, value))


def add_parameter(
    params: Any,
    key_prefix: str,
    obj: Any,
    style: str = "",
    collection_type: str = "",
) -> None:
    """Add ``obj`` to header or query parameters, expanding deep objects.

    ``params`` is either a mapping of header names to values, where a new
    value replaces the old, or a list of ``(key, value)`` query pairs.
    """
    if obj is None:
        value = "null"
    elif isinstance(obj, str):
        value = obj
    elif isinstance(obj, bool):
        value = "true" if obj else "false"
    elif isinstance(obj, int):
        value = str(obj)
    elif isinstance(obj, float):
        value = _format_float32(obj)
    elif isinstance(obj, Nullable):
        add_parameter(params, key_prefix, obj.get(), style, collection_type)
        return
    elif callable(getattr(obj, "to_dict", None)):
        add_parameter(params, key_prefix, obj.to_dict(), style, collection_type)
        return
    elif isinstance(obj, (_dt.datetime, _dt.date, _dt.time)):
        value = obj.isoformat()
    elif isinstance(obj, Mapping):
        for key, item in obj.items():
            add_parameter(params, f"{key_prefix}[{key}]", item, style, collection_type)
        return
    elif isinstance(obj, (list, tuple, bytes, bytearray)):
        for position, item in enumerate(obj):
            key = f"{key_prefix}[{position}]" if style == "deepObject" else key_prefix
            add_parameter(params, key, item, style, collection_type)
        return
    else:
        value = f"{type(obj).__name__} value"
    _place(params, key_prefix, value, collection_type)


_WHITESPACE = b"\t\n\x0c\r "
_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)
_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", _TEXT_PLAIN),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"BM", "image/bmp"),
    (b"OggS\x00", "application/ogg"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _sniff(data: bytes) -> str:
    data = data[:512]
    stripped = data.lstrip(_WHITESPACE)
    upper = stripped.upper()
    for tag in _HTML_TAGS:
        if upper.startswith(tag) and len(stripped) > len(tag) and stripped[len(tag)] in b" >":
            return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for signature, kind in _SIGNATURES:
        if data.startswith(signature):
            return kind
    if any(byte in _BINARY_BYTES for byte in data):
        return "application/octet-stream"
    return _TEXT_PLAIN


def detect_content_type(body: Any) -> str:
    """Guess the Content-Type of a request body."""
    if isinstance(body, str):
        return _TEXT_PLAIN
    if isinstance(body, (bytes, bytearray)):
        return _sniff(bytes(body))
    if isinstance(body, (bool, int, float, complex)):
        return _TEXT_PLAIN
    return _JSON_UTF8


def _jsonable(value: Any) -> Any:
    if isinstance(value, Nullable):
        return value.get()
    if callable(getattr(value, "to_dict", None)):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _to_xml(body: Any) -> bytes:
    if callable(getattr(body, "to_dict", None)):
        fields = body.to_dict()
    elif dataclasses.is_dataclass(body) and not isinstance(body, type):
        fields = dataclasses.asdict(body)
    else:
        raise TypeError(f"xml: unsupported type: {type(body).__name__}")
    root = ET.Element(type(body).__name__)
    for key, value in fields.items():
        ET.SubElement(root, key).text = "" if value is None else str(value)
    return ET.tostring(root)


def set_body(body: Any, content_type: str) -> bytes:
    """Serialise a request body according to ``content_type``."""
    data = b""
    if callable(getattr(body, "read", None)):
        read = body.read()
        data = read.encode("utf-8") if isinstance(read, str) else bytes(read)
    elif isinstance(body, (bytes, bytearray, memoryview)):
        data = bytes(body)
    elif isinstance(body, str):
        data = body.encode("utf-8")
    elif JSON_CHECK.search(content_type):
        text = json.dumps(body, default=_jsonable, sort_keys=True, separators=(",", ":"))
        data = (text + "\n").encode("utf-8")
    elif XML_CHECK.search(content_type):
        data = _to_xml(body)
    if not data:
        raise ValueError(f"invalid body type {content_type}")
    return data


def parse_cache_control(headers: Mapping[str, str]) -> dict[str, str]:
    """Split the Cache-Control header into its directives."""
    directives: dict[str, str] = {}
    for part in _header_value(headers, "Cache-Control").split(","):
        part = part.strip(" ")
        if not part:
            continue
        if "=" in part:
            pieces = part.split("=")
            directives[pieces[0].strip(" ")] = pieces[1].strip(",")
        else:
            directives[part] = ""
    return directives


_RFC1123 = re.compile(
    r"(Mon|Tue|Wed|Thu|Fri|Sat|Sun), (\d{2}) "
    r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec) (\d{4}) "
    r"(\d{2}):(\d{2}):(\d{2}) ([A-Za-z]{3,5})"
)
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_SECONDS = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)")
_ZERO_TIME = _dt.datetime(1, 1, 1, tzinfo=_dt.timezone.utc)


def _parse_rfc1123(text: str) -> _dt.datetime:
    match = _RFC1123.fullmatch(text)
    if match is None:
        raise ValueError(f"cannot parse {text!r} as an RFC 1123 date")
    _, day, month, year, hour, minute, second, _ = match.groups()
    return _dt.datetime(
        int(year), _MONTHS.index(month) + 1, int(day),
        int(hour), int(minute), int(second), tzinfo=_dt.timezone.utc,
    )


def cache_expires(headers: Mapping[str, str]) -> _dt.datetime:
    """Return when a response with these headers stops being fresh."""
    try:
        now = _parse_rfc1123(_header_value(headers, "Date"))
    except ValueError:
        return _dt.datetime.now(_dt.timezone.utc)
    directives = parse_cache_control(headers)
    if "max-age" in directives:
        max_age = directives["max-age"]
        if _SECONDS.fullmatch(max_age):
            return now + _dt.timedelta(seconds=float(max_age))
        return now
    expires_header = _header_value(headers, "Expires")
    if expires_header:
        try:
            return _parse_rfc1123(expires_header)
        except ValueError:
            return now
    return _ZERO_TIME


def format_error_message(status: str, model: Any) -> str:
    """Join a status with the title and detail of a problem-details model."""
    text = ""
    plain = (Mapping, str, bytes, bytearray, int, float, list, tuple)
    if model is not None and not isinstance(model, plain):
        if hasattr(model, "title"):
            text = str(model.title)
        if hasattr(model, "detail"):
            text = f"{text} ({model.detail})"
    return f"{status} {text}".strip()


def _pairs(params: Any) -> Iterator[tuple[str, str]]:
    if params is None:
        return
    if isinstance(params, Mapping):
        for key, value in params.items():
            if isinstance(value, str):
                yield key, value
            else:
                for item in value:
                    yield key, item
    else:
        for key, value in params:
            yield key, value


def _encode_query(pairs: Iterable[tuple[str, str]], descape: bool) -> str:
    encoded = []
    for key, value in sorted(pairs, key=lambda pair: pair[0]):
        name = quote_plus(key, safe="")
        if descape:
            name = name.replace("%5B", "[").replace("%5D", "]")
        encoded.append(f"{name}={quote_plus(value, safe='')}")
    return "&".join(encoded)


def _quote_field(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _multipart(
    form: list[tuple[str, str]], files: list[tuple[str, str, bytes]]
) -> tuple[bytes, str]:
    boundary = secrets.token_hex(30)
    chunks: list[bytes] = []

    def add_part(disposition: str, content_type: str | None, data: bytes) -> None:
        head = f"--{boundary}\r\nContent-Disposition: {disposition}\r\n"
        if content_type:
            head += f"Content-Type: {content_type}\r\n"
        chunks.append(head.encode("utf-8") + b"\r\n" + data + b"\r\n")

    def add_file(field_name: str, file_name: str, data: bytes) -> None:
        disposition = (
            f'form-data; name="{_quote_field(field_name)}"; '
            f'filename="{_quote_field(file_name)}"'
        )
        add_part(disposition, "application/octet-stream", data)

    for key, value in form:
        if key.startswith("@"):
            path = Path(os.path.normpath(value))
            add_file(key[1:], path.name, path.read_bytes())
        else:
            add_part(f'form-data; name="{_quote_field(key)}"', None, value.encode("utf-8"))
    for field_name, file_name, data in files:
        if data and file_name:
            add_file(field_name, os.path.basename(file_name), bytes(data))
    chunks.append(f"--{boundary}--\r\n".encode("ascii"))
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def _canonical_header(name: str) -> str:
    return "-".join(word.capitalize() for word in name.split("-"))


def _add_header(headers: dict[str, str], name: str, value: str) -> None:
    key = _canonical_header(name)
    if key in headers:
        headers[key] = f"{headers[key]}, {value}"
    else:
        headers[key] = value


def _urllib_transport(request: PreparedRequest) -> HTTPResponse:
    outgoing = urllib.request.Request(
        request.url, data=request.body, headers=request.headers, method=request.method
    )
    try:
        with urllib.request.urlopen(outgoing) as reply:
            return HTTPResponse(reply.status, dict(reply.headers.items()), reply.read())
    except urllib.error.HTTPError as err:
        try:
            return HTTPResponse(err.code, dict(err.headers.items()), err.read())
        finally:
            err.close()


def _dump_request(request: PreparedRequest) -> str:
    parts = urlsplit(request.url)
    target = parts.path or "/"
    if parts.query:
        target += "?" + parts.query
    lines = [f"{request.method} {target} HTTP/1.1", f"Host: {parts.netloc}"]
    lines += [f"{key}: {value}" for key, value in request.headers.items()]
    body = (request.body or b"").decode("utf-8", errors="replace")
    return "\r\n".join(lines) + "\r\n\r\n" + body


def _dump_response(response: HTTPResponse) -> str:
    lines = [f"HTTP/1.1 {response.status}"]
    lines += [f"{key}: {value}" for key, value in response.headers.items()]
    return "\r\n".join(lines) + "\r\n\r\n" + response.body.decode("utf-8", errors="replace")


def _is_list_type(target: Any) -> bool:
    return target is list or get_origin(target) is list


def _convert(target: Any, data: Any) -> Any:
    if data is None or target is None or target is Any or target is object:
        return data
    if get_origin(target) is Union:
        options = [arg for arg in get_args(target) if arg is not type(None)]
        return _convert(options[0], data) if len(options) == 1 else data
    if _is_list_type(target):
        if not isinstance(data, list):
            raise TypeError(f"expected a JSON array, not {type(data).__name__}")
        item_type = (get_args(target) or (Any,))[0]
        return [_convert(item_type, item) for item in data]
    if target is dict or get_origin(target) is dict:
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, not {type(data).__name__}")
        return data
    if callable(getattr(target, "from_dict", None)):
        return target.from_dict(data)
    return data


def _element_fields(element: ET.Element) -> dict[str, str]:
    return {child.tag: child.text or "" for child in element}


def _decode_xml(target: Any, body: bytes) -> Any:
    root = ET.fromstring(body)
    if _is_list_type(target):
        item_type = (get_args(target) or (Any,))[0]
        if callable(getattr(item_type, "from_dict", None)):
            return [item_type.from_dict(_element_fields(child)) for child in root]
        return list(root)
    if callable(getattr(target, "from_dict", None)):
        return target.from_dict(_element_fields(root))
    return root


class APIClient:
    """Sends requests to the API as described by a :class:`Configuration`."""

    def __init__(self, configuration: Configuration | None = None) -> None:
        self.config = configuration if configuration is not None else Configuration()
        if self.config.http_client is None:
            self.config.http_client = _urllib_transport

    def prepare_request(
        self,
        context: Mapping[Any, Any] | None,
        path: str,
        method: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        query: Any = None,
        form: Any = None,
        files: Iterable[tuple[str, str, bytes]] | None = None,
    ) -> PreparedRequest:
        """Build the request for ``method`` on ``path`` with its body and parameters."""
        header_params = dict(headers or {})
        form_pairs = list(_pairs(form))
        file_list = list(files or ())
        payload: bytes | None = None

        if body is not None:
            content_type = header_params.get("Content-Type", "")
            if not content_type:
                content_type = detect_content_type(body)
                header_params["Content-Type"] = content_type
            payload = set_body(body, content_type)

        content_type = header_params.get("Content-Type", "")
        if (content_type.startswith("multipart/form-data") and form_pairs) or file_list:
            if payload is not None:
                raise ValueError("cannot specify a body and a multipart form at the same time")
            payload, header_params["Content-Type"] = _multipart(form_pairs, file_list)
            header_params["Content-Length"] = str(len(payload))

        content_type = header_params.get("Content-Type", "")
        if content_type.startswith("application/x-www-form-urlencoded") and form_pairs:
            if payload is not None:
                raise ValueError(
                    "cannot specify a body and an x-www-form-urlencoded form at the same time"
                )
            payload = _encode_query(form_pairs, descape=False).encode("ascii")
            header_params["Content-Length"] = str(len(payload))

        parts = urlsplit(path)
        scheme = self.config.scheme or parts.scheme
        netloc = self.config.host or parts.netloc
        query_pairs = parse_qsl(parts.query, keep_blank_values=True) + list(_pairs(query))
        url = urlunsplit(
            (scheme, netloc, parts.path, _encode_query(query_pairs, descape=True), parts.fragment)
        )

        _add_header(header_params, "User-Agent", self.config.user_agent)
        for name, value in self.config.default_header.items():
            _add_header(header_params, name, value)
        return PreparedRequest(method, url, header_params, payload, context)

    def call_api(self, request: PreparedRequest) -> HTTPResponse:
        """Send ``request`` and return the server's reply."""
        if self.config.debug:
            logger.info("\n%s\n", _dump_request(request))
        response = self.config.http_client(request)
        if self.config.debug:
            logger.info("\n%s\n", _dump_response(response))
        return response

    def decode(self, target: Any, body: bytes, content_type: str) -> Any:
        """Decode a response body into ``target``.

        ``target`` may be ``str``, a file type, a model class, ``list[Model]``
        or ``None`` for plain decoded data. An empty body decodes to None.
        """
        if not body:
            return None
        if target is str:
            return body.decode("utf-8", errors="replace")
        if isinstance(target, type) and issubclass(target, io.IOBase):
            handle = tempfile.TemporaryFile(prefix="HttpClientFile")
            handle.write(body)
            handle.seek(0)
            return handle
        if XML_CHECK.search(content_type):
            return _decode_xml(target, body)
        if JSON_CHECK.search(content_type):
            if callable(getattr(target, "from_json", None)):
                return target.from_json(body)
            return _convert(target, json.loads(body))
        raise ValueError("undefined response type")