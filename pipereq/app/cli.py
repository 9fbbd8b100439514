"""Command-line interface: send one request and print the response."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence, TextIO

from bs4 import BeautifulSoup

from ..api import build_request, request
from ..core.context import Method, ResponseContext
from ..errors import ReqError
from ..settings import apply_config, load_config
from ..utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        structured=not args.log_plain,
    )

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        parser.error(str(exc))
    except ReqError as exc:
        LOGGER.error("Invalid configuration", extra={"event": "cli.config", "error": str(exc)})
        return 1
    apply_config(config)

    options = _call_options(parser, args)
    if args.show_steps:
        return _show_steps(options)
    return _send(args, options)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pipereq", description="Send an HTTP request through the step pipeline")
    parser.add_argument("--config", help="Path to configuration file", default=None)
    parser.add_argument(
        "--log-plain",
        action="store_true",
        help="Use plain-text logs instead of JSON",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every step at debug level")
    parser.add_argument("method", type=str.upper, choices=[m.value for m in Method], metavar="METHOD")
    parser.add_argument("url", metavar="URL")
    parser.add_argument(
        "-H",
        "--header",
        dest="headers",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Request header; may be repeated",
    )
    body = parser.add_mutually_exclusive_group()
    body.add_argument("-d", "--data", help="Raw request body")
    body.add_argument("--json", dest="json_body", metavar="JSON", help="JSON request body")
    parser.add_argument(
        "-p",
        "--param",
        dest="params",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter; may be repeated",
    )
    parser.add_argument("--raw", action="store_true", help="Skip decompression and decoding")
    parser.add_argument("--cache", action="store_true", default=None, help="Enable the response cache")
    parser.add_argument("--max-retries", type=int, default=None)
    parser.add_argument("--max-redirects", type=int, default=None)
    parser.add_argument("--adapter", default=None, help="Adapter name (urllib, requests, browser)")
    parser.add_argument("-i", "--include", action="store_true", help="Print status line and headers")
    parser.add_argument(
        "--show-steps",
        action="store_true",
        help="Print the step layout for this call without sending it",
    )
    return parser


def _split_pair(parser: argparse.ArgumentParser, value: str, sep: str, label: str) -> tuple[str, str]:
    name, found, rest = value.partition(sep)
    if not found or not name.strip():
        parser.error(f"{label} must look like NAME{sep}VALUE, got {value!r}")
    return name.strip(), rest.strip()


def _call_options(parser: argparse.ArgumentParser, args: argparse.Namespace) -> dict[str, Any]:
    options: dict[str, Any] = {
        "method": args.method,
        "url": args.url,
        "raw": args.raw or None,
        "cache": args.cache,
        "max_retries": args.max_retries,
        "max_redirects": args.max_redirects,
        "adapter": args.adapter,
    }
    if args.headers:
        options["headers"] = [_split_pair(parser, item, ":", "Header") for item in args.headers]
    if args.params:
        options["params"] = [_split_pair(parser, item, "=", "Parameter") for item in args.params]
    if args.json_body is not None:
        try:
            options["body"] = ("json", json.loads(args.json_body))
        except json.JSONDecodeError as exc:
            parser.error(f"--json is not valid JSON: {exc}")
    elif args.data is not None:
        options["body"] = args.data
    return options


def _show_steps(options: dict[str, Any]) -> int:
    try:
        prepared = build_request(**options)
    except ReqError as exc:
        LOGGER.error("Cannot build request", extra={"event": "cli.error", "error": str(exc)})
        return 1
    print(json.dumps(prepared.step_names(), indent=2))
    return 0


def _send(args: argparse.Namespace, options: dict[str, Any]) -> int:
    LOGGER.info(
        "Sending request",
        extra={"event": "cli.command", "method": args.method, "url": args.url},
    )
    result = request(**options)
    if result.error is not None:
        error = result.error
        LOGGER.error(
            "Request failed",
            extra={"event": "cli.error", "kind": error.kind.value, "error": str(error)},
        )
        if error.response is not None and args.include:
            _print_head(error.response, sys.stdout)
        return 1
    response = result.unwrap()
    if args.include:
        _print_head(response, sys.stdout)
    _print_body(response, sys.stdout)
    return 0


def _print_head(response: ResponseContext, stream: TextIO) -> None:
    stream.write(f"HTTP {response.status}\n")
    for name, value in response.headers.items():
        stream.write(f"{name}: {value}\n")
    stream.write("\n")


def _print_body(response: ResponseContext, stream: TextIO) -> None:
    body = response.body
    if isinstance(body, (bytes, bytearray)):
        stream.flush()
        buffer = getattr(stream, "buffer", None)
        if buffer is not None:
            buffer.write(bytes(body))
            buffer.flush()
        else:
            stream.write(bytes(body).decode(errors="replace"))
        return
    if isinstance(body, str):
        text = body
    elif isinstance(body, BeautifulSoup):
        text = str(body)
    elif isinstance(body, list) and body and all(isinstance(item, tuple) for item in body):
        text = "\n".join(f"{name}\t{len(data)} bytes" for name, data in body)
    else:
        text = json.dumps(body, ensure_ascii=False, indent=2, default=str)
    stream.write(text if text.endswith("\n") else text + "\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
