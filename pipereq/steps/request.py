"""Request-phase steps: URL, headers, credentials and body preparation."""

from __future__ import annotations

import base64
import json
import netrc
import os
import re
import urllib.parse
from datetime import date, datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any, Iterable, Mapping

from urllib3 import encode_multipart_formdata

from .._version import __version__
from ..core.context import RequestContext
from ..core.headers import Headers
from ..core.step import Halt
from ..errors import ConfigError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

USER_AGENT = f"pipereq/{__version__}"
ACCEPT_ENCODING = "gzip, deflate, br"

_RANGE_SPEC = re.compile(r"^(?:\d+-\d*|-\d+)$")
_BODY_TAGS = {"json", "form", "multipart"}


def is_absolute_url(url: str) -> bool:
    parts = urllib.parse.urlsplit(url)
    return bool(parts.scheme and parts.netloc)


def put_default_headers(request: RequestContext) -> RequestContext:
    user_agent = request.options.get("user_agent") or USER_AGENT
    headers = request.headers.setdefault("User-Agent", user_agent)
    headers = headers.setdefault("Accept-Encoding", ACCEPT_ENCODING)
    if headers is request.headers:
        return request
    return request.evolve(headers=headers)


def put_base_url(request: RequestContext) -> RequestContext:
    base_url = request.options.get("base_url")
    if not base_url or is_absolute_url(request.url):
        return request
    base = str(base_url).rstrip("/")
    path = request.url.lstrip("/")
    return request.evolve(url=f"{base}/{path}" if path else base)


def _pairs(data: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> list[tuple[str, Any]]:
    items = data.items() if isinstance(data, Mapping) else data
    pairs: list[tuple[str, Any]] = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), item) for item in value if item is not None)
        else:
            pairs.append((str(key), value))
    return pairs


def put_params(request: RequestContext) -> RequestContext:
    """Append ``params`` after any query already present; applied once per exchange."""
    params = request.options.get("params")
    if not params or request.get_private("params_applied"):
        return request
    encoded = urllib.parse.urlencode(_pairs(params))
    parts = urllib.parse.urlsplit(request.url)
    query = f"{parts.query}&{encoded}" if parts.query else encoded
    url = urllib.parse.urlunsplit(parts._replace(query=query))
    return request.evolve(url=url).put_private("params_applied", True)


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def auth(request: RequestContext) -> RequestContext | Halt:
    """Set ``Authorization`` from the ``auth`` option.

    Accepted forms: ``(user, password)``, ``("basic", "user:password")``,
    ``("bearer", token)``, a ready ``"Bearer ..."``/``"Basic ..."`` string, or
    a callable taking and returning the request. Callables run synchronously.
    """
    spec = request.options.get("auth")
    if spec is None:
        return request
    if callable(spec):
        result = spec(request)
        if not isinstance(result, RequestContext):
            return Halt(
                ConfigError(
                    "Auth callable must return a RequestContext",
                    details={"returned": type(result).__name__},
                )
            )
        return result

    header = _authorization_value(spec)
    if header is None:
        # Never echo the credentials themselves.
        return Halt(ConfigError("Malformed auth option", details={"type": type(spec).__name__}))
    return request.with_header("Authorization", header)


def _authorization_value(spec: Any) -> str | None:
    if isinstance(spec, str):
        scheme = spec.split(" ", 1)[0].lower()
        if scheme in {"basic", "bearer"} and len(spec.split(" ", 1)) == 2:
            return spec
        return None
    if not isinstance(spec, (tuple, list)) or len(spec) != 2:
        return None
    first, second = spec
    if not isinstance(first, str) or not isinstance(second, str):
        return None
    tag = first.lower()
    if tag == "bearer":
        return f"Bearer {second}" if second else None
    if tag == "basic":
        if ":" not in second:
            return None
        username, password = second.split(":", 1)
        return basic_auth_header(username, password)
    if not first:
        return None
    return basic_auth_header(first, second)


def _default_netrc_path() -> Path:
    env_value = os.environ.get("NETRC")
    return Path(env_value) if env_value else Path.home() / ".netrc"


def load_netrc(request: RequestContext) -> RequestContext | Halt:
    option = request.options.get("netrc")
    if not option or "Authorization" in request.headers:
        return request
    explicit = option is not True
    path = Path(option) if explicit else _default_netrc_path()

    try:
        records = netrc.netrc(str(path))
    except FileNotFoundError as exc:
        if not explicit:
            return request
        return Halt(ConfigError("netrc file not found", details={"path": str(path)}, cause=exc))
    except netrc.NetrcParseError as exc:
        return Halt(
            ConfigError(
                "Malformed netrc file",
                details={"path": str(path), "line": exc.lineno},
                cause=exc,
            )
        )
    except OSError as exc:
        return Halt(ConfigError("Cannot read netrc file", details={"path": str(path)}, cause=exc))

    host = urllib.parse.urlsplit(request.url).hostname
    entry = records.authenticators(host) if host else None
    if entry is None:
        return request
    login, _account, password = entry
    return request.with_header("Authorization", basic_auth_header(login or "", password or ""))


def format_range(value: Any) -> str:
    """Render a byte-range option as a ``Range`` header value."""
    if isinstance(value, str):
        spec = value.strip()
        if spec.startswith("bytes="):
            return spec
        if _RANGE_SPEC.match(spec):
            return f"bytes={spec}"
        raise ValueError(f"invalid range string {value!r}")
    if isinstance(value, range):
        if value.step != 1 or len(value) == 0 or value.start < 0:
            raise ValueError(f"invalid range {value!r}")
        return f"bytes={value.start}-{value.stop - 1}"
    if isinstance(value, bool):
        raise ValueError("invalid range flag")
    if isinstance(value, int):
        return f"bytes={value}" if value < 0 else f"bytes={value}-"
    if isinstance(value, (tuple, list)) and len(value) == 2:
        first, last = value
        if first is None and last is None:
            raise ValueError("open range on both ends")
        for bound in (first, last):
            if bound is not None and (isinstance(bound, bool) or not isinstance(bound, int) or bound < 0):
                raise ValueError(f"invalid range bound {bound!r}")
        if first is None:
            return f"bytes=0-{last}"
        if last is None:
            return f"bytes={first}-"
        if first > last:
            raise ValueError(f"range start {first} after end {last}")
        return f"bytes={first}-{last}"
    raise ValueError(f"unsupported range option {value!r}")


def put_range(request: RequestContext) -> RequestContext | Halt:
    value = request.options.get("range")
    if value is None:
        return request
    try:
        header = format_range(value)
    except ValueError as exc:
        return Halt(ConfigError("Malformed range option", details={"range": repr(value)}, cause=exc))
    return request.with_header("Range", header)


def encode_header_value(value: Any) -> str:
    if isinstance(value, str):
        text = value
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        text = format_datetime(moment.astimezone(timezone.utc), usegmt=True)
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        text = format_datetime(moment, usegmt=True)
    elif isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode("latin-1")
    else:
        text = str(value)
    if "\r" in text or "\n" in text:
        raise ValueError("header values must not contain line breaks")
    return text


def encode_headers(request: RequestContext) -> RequestContext | Halt:
    """Turn structured header values into wire strings; already-encoded headers pass unchanged."""
    pairs: list[tuple[str, str]] = []
    for name, value in request.headers.items():
        values = value if isinstance(value, (list, tuple)) else (value,)
        for item in values:
            try:
                pairs.append((str(name).strip(), encode_header_value(item)))
            except ValueError as exc:
                return Halt(ConfigError("Malformed header value", details={"header": name}, cause=exc))
    encoded = Headers(pairs)
    if encoded == request.headers:
        return request
    return request.evolve(headers=encoded)


def encode_body(request: RequestContext) -> RequestContext | Halt:
    body = request.body
    if body is None or isinstance(body, bytes):
        return request
    if isinstance(body, bytearray):
        return request.evolve(body=bytes(body))
    if isinstance(body, str):
        return request.evolve(body=body.encode("utf-8"))

    if isinstance(body, tuple) and len(body) == 2 and body[0] in _BODY_TAGS:
        kind, data = body
    elif isinstance(body, (dict, list)):
        kind, data = "json", body
    else:
        return Halt(ConfigError("Unsupported body type", details={"type": type(body).__name__}))

    try:
        if kind == "json":
            raw = json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
            content_type = "application/json"
        elif kind == "form":
            raw = urllib.parse.urlencode(_pairs(data)).encode("ascii")
            content_type = "application/x-www-form-urlencoded"
        else:
            fields = dict(data) if isinstance(data, Mapping) else list(data)
            raw, content_type = encode_multipart_formdata(fields)
    except (TypeError, ValueError) as exc:
        return Halt(ConfigError(f"Cannot encode {kind} body", details={"kind": kind}, cause=exc))

    headers = request.headers.setdefault("Content-Type", content_type)
    return request.evolve(body=raw, headers=headers)


__all__ = [
    "ACCEPT_ENCODING",
    "USER_AGENT",
    "auth",
    "basic_auth_header",
    "encode_body",
    "encode_header_value",
    "encode_headers",
    "format_range",
    "is_absolute_url",
    "load_netrc",
    "put_base_url",
    "put_default_headers",
    "put_params",
    "put_range",
]
