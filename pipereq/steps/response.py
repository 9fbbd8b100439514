"""Response-phase steps: content decoding and status handling."""

from __future__ import annotations

import csv
import gzip
import io
import json
import mimetypes
import tarfile
import urllib.parse
import zipfile
import zlib
from typing import Any, Callable, Iterator

import brotli
from bs4 import BeautifulSoup

from ..core.context import Method, RequestContext, ResponseContext
from ..errors import DecodeError, HTTPStatusError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

CHUNK_SIZE = 64 * 1024
IDENTITY = "identity"


def _chunks(data: bytes) -> Iterator[memoryview]:
    view = memoryview(data)
    for start in range(0, len(view), CHUNK_SIZE):
        yield view[start : start + CHUNK_SIZE]


def _inflate(data: bytes, wbits: int) -> bytes:
    decompressor = zlib.decompressobj(wbits)
    out = io.BytesIO()
    for chunk in _chunks(data):
        out.write(decompressor.decompress(chunk))
    out.write(decompressor.flush())
    if not decompressor.eof:
        raise zlib.error("compressed stream is truncated")
    return out.getvalue()


def _gunzip(data: bytes) -> bytes:
    return _inflate(data, 16 + zlib.MAX_WBITS)


def _deflate(data: bytes) -> bytes:
    try:
        return _inflate(data, zlib.MAX_WBITS)
    except zlib.error:
        # Some servers send raw deflate without the zlib wrapper.
        return _inflate(data, -zlib.MAX_WBITS)


def _unbrotli(data: bytes) -> bytes:
    return brotli.decompress(data)


DECOMPRESSORS: dict[str, Callable[[bytes], bytes]] = {
    "gzip": _gunzip,
    "x-gzip": _gunzip,
    "deflate": _deflate,
    "br": _unbrotli,
}


def content_encodings(response: ResponseContext) -> list[str]:
    codings: list[str] = []
    for value in response.headers.get_all("content-encoding"):
        codings.extend(part.strip().lower() for part in str(value).split(",") if part.strip())
    return [coding for coding in codings if coding != IDENTITY]


def decompress_body(request: RequestContext, response: ResponseContext) -> ResponseContext | DecodeError:
    """Undo ``Content-Encoding`` layers, last applied first."""
    if request.options.get("raw") or not isinstance(response.body, (bytes, bytearray)):
        return response
    if "content-encoding" not in response.headers:
        return response
    codings = content_encodings(response)
    unknown = [coding for coding in codings if coding not in DECOMPRESSORS]
    if unknown:
        LOGGER.debug(
            "Leaving body encoded",
            extra={"event": "decompress.skip", "url": request.url, "encodings": unknown},
        )
        return response

    body = bytes(response.body)
    for coding in reversed(codings):
        if not body:
            break
        try:
            body = DECOMPRESSORS[coding](body)
        except (zlib.error, brotli.error, OSError, EOFError) as exc:
            return DecodeError(
                f"Cannot decompress {coding} body",
                response=response,
                details={"encoding": coding, "url": request.url},
                cause=exc,
            )
    headers = response.headers.remove("Content-Encoding").remove("Content-Length")
    return response.evolve(body=body, headers=headers)


def _media_type(response: ResponseContext) -> tuple[str, dict[str, str]]:
    value = response.header("content-type") or ""
    media, _, rest = value.partition(";")
    params: dict[str, str] = {}
    for part in rest.split(";"):
        name, sep, param = part.partition("=")
        if sep:
            params[name.strip().lower()] = param.strip().strip('"')
    return media.strip().lower(), params


def _is_tarball(url: str) -> bool:
    return urllib.parse.urlsplit(url).path.lower().endswith((".tar.gz", ".tgz"))


def _format_from_extension(url: str) -> str | None:
    if _is_tarball(url):
        return "tar"
    path = urllib.parse.urlsplit(url).path.lower()
    guessed, encoding = mimetypes.guess_type(path)
    if encoding == "gzip":
        return "gzip"
    return _format_from_media_type(guessed) if guessed else None


def _format_from_media_type(media: str) -> str | None:
    if media == "application/json" or media.endswith("+json"):
        return "json"
    if media == "text/csv":
        return "csv"
    if media in {"text/html", "application/xhtml+xml"}:
        return "html"
    if media in {"application/zip", "application/x-zip-compressed"}:
        return "zip"
    if media in {"application/x-tar", "application/x-gtar"}:
        return "tar"
    if media in {"application/gzip", "application/x-gzip"}:
        return "gzip"
    if media.startswith("text/"):
        return "text"
    return None


def detect_format(request: RequestContext, response: ResponseContext) -> str | None:
    media, _ = _media_type(response)
    if not media or media == "application/octet-stream":
        return _format_from_extension(request.url)
    if media in {"application/gzip", "application/x-gzip"}:
        # tarballs are served under the gzip media type too
        return "tar" if _is_tarball(request.url) else "gzip"
    return _format_from_media_type(media)


def _charset(response: ResponseContext) -> str:
    _, params = _media_type(response)
    return params.get("charset") or "utf-8"


def _decode_text(body: bytes, charset: str) -> str:
    try:
        return body.decode(charset)
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _decode_csv(body: bytes, charset: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(_decode_text(body, charset), newline="")))


def _decode_zip(body: bytes) -> list[tuple[str, bytes]]:
    with zipfile.ZipFile(io.BytesIO(body)) as archive:
        return [(info.filename, archive.read(info)) for info in archive.infolist() if not info.is_dir()]


def _decode_tar(body: bytes) -> list[tuple[str, bytes]]:
    entries: list[tuple[str, bytes]] = []
    with tarfile.open(fileobj=io.BytesIO(body), mode="r:*") as archive:
        for member in archive.getmembers():
            if not member.isfile():
                continue
            handle = archive.extractfile(member)
            if handle is not None:
                entries.append((member.name, handle.read()))
    return entries


def decode_body(request: RequestContext, response: ResponseContext) -> ResponseContext | DecodeError:
    """Turn the raw body into a Python value according to its content type.

    JSON becomes the parsed object, CSV a list of rows, HTML a
    ``BeautifulSoup`` document, zip and tar archives a list of
    ``(name, data)`` pairs, gzip the inflated bytes and other ``text/*`` a
    string. Anything else is left as bytes.
    """
    body = response.body
    if request.options.get("raw") or request.method is Method.HEAD:
        return response
    if not isinstance(body, (bytes, bytearray)) or not body:
        return response
    if content_encodings(response):
        return response
    fmt = detect_format(request, response)
    if fmt is None:
        return response

    data = bytes(body)
    charset = _charset(response)
    try:
        if fmt == "json":
            decoded: Any = json.loads(_decode_text(data, charset))
        elif fmt == "csv":
            decoded = _decode_csv(data, charset)
        elif fmt == "html":
            decoded = BeautifulSoup(data, "html.parser", from_encoding=charset)
        elif fmt == "zip":
            decoded = _decode_zip(data)
        elif fmt == "tar":
            decoded = _decode_tar(data)
        elif fmt == "gzip":
            decoded = gzip.decompress(data)
        else:
            decoded = _decode_text(data, charset)
    except (ValueError, UnicodeDecodeError, csv.Error, zipfile.BadZipFile, tarfile.TarError, OSError, EOFError) as exc:
        return DecodeError(
            f"Cannot decode {fmt} body",
            response=response,
            details={"format": fmt, "content_type": response.header("content-type"), "url": request.url},
            cause=exc,
        )
    return response.evolve(body=decoded)


def handle_http_errors(request: RequestContext, response: ResponseContext) -> ResponseContext | HTTPStatusError:
    option = request.options.get("http_errors")
    if not option:
        return response
    if option is True:
        failing = response.status >= 400
    else:
        failing = response.status in option
    if not failing:
        return response
    return HTTPStatusError(
        f"HTTP {response.status} for {request.method.value} {request.url}",
        response=response,
        details={"status": response.status, "url": request.url},
    )


__all__ = [
    "DECOMPRESSORS",
    "content_encodings",
    "decode_body",
    "decompress_body",
    "detect_format",
    "handle_http_errors",
]
