"""Request and response values threaded through the pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from ..errors import ConfigError
from .headers import Headers, HeaderInput
from .step import Step

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..errors import ReqError

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class Method(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: "Method | str") -> "Method":
        if isinstance(value, Method):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as exc:
            raise ConfigError(f"Unsupported HTTP method: {value!r}") from exc


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not mapping:
        return _EMPTY
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class RequestContext:
    """One attempt of a logical request.

    ``options`` is fixed at construction and only read by steps. ``private``
    holds per-exchange bookkeeping (retry and redirect counters, markers)
    and, like everything else here, changes only by deriving a new value.
    """

    method: Method
    url: str
    headers: Headers = field(default_factory=Headers)
    body: Any = None
    options: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    request_steps: tuple[Step, ...] = ()
    response_steps: tuple[Step, ...] = ()
    error_steps: tuple[Step, ...] = ()
    private: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def build(
        cls,
        method: Method | str,
        url: str,
        options: Mapping[str, Any] | None = None,
        *,
        headers: HeaderInput = None,
        body: Any = None,
    ) -> "RequestContext":
        if not url:
            raise ConfigError("A request URL is required")
        return cls(
            method=Method.parse(method),
            url=str(url),
            headers=Headers(headers),
            body=body,
            options=_freeze(options),
        )

    def evolve(self, **changes: Any) -> "RequestContext":
        if "headers" in changes and not isinstance(changes["headers"], Headers):
            changes["headers"] = Headers(changes["headers"])
        for name in ("request_steps", "response_steps", "error_steps"):
            if name in changes:
                changes[name] = tuple(changes[name])
        if "private" in changes:
            changes["private"] = _freeze(changes["private"])
        return replace(self, **changes)

    def with_header(self, name: str, value: Any) -> "RequestContext":
        return self.evolve(headers=self.headers.set(name, value))

    def without_header(self, name: str) -> "RequestContext":
        return self.evolve(headers=self.headers.remove(name))

    def get_private(self, key: str, default: Any = None) -> Any:
        return self.private.get(key, default)

    def put_private(self, key: str, value: Any) -> "RequestContext":
        updated = dict(self.private)
        updated[key] = value
        return self.evolve(private=updated)

    def append_request_step(self, step: Step) -> "RequestContext":
        return self.evolve(request_steps=self.request_steps + (step,))

    def prepend_request_step(self, step: Step) -> "RequestContext":
        return self.evolve(request_steps=(step,) + self.request_steps)

    def append_response_step(self, step: Step) -> "RequestContext":
        return self.evolve(response_steps=self.response_steps + (step,))

    def append_error_step(self, step: Step) -> "RequestContext":
        return self.evolve(error_steps=self.error_steps + (step,))

    def remove_step(self, name: str) -> "RequestContext":
        """Drop the step called ``name`` from every phase."""
        return self.evolve(
            request_steps=tuple(s for s in self.request_steps if s.name != name),
            response_steps=tuple(s for s in self.response_steps if s.name != name),
            error_steps=tuple(s for s in self.error_steps if s.name != name),
        )

    def step_names(self) -> dict[str, list[str]]:
        return {
            "request": [s.name for s in self.request_steps],
            "response": [s.name for s in self.response_steps],
            "error": [s.name for s in self.error_steps],
        }


@dataclass(frozen=True, slots=True)
class ResponseContext:
    status: int
    headers: Headers = field(default_factory=Headers)
    body: Any = b""
    private: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    def __post_init__(self) -> None:
        if not isinstance(self.status, int) or not 100 <= self.status <= 599:
            raise ValueError(f"Invalid HTTP status: {self.status!r}")
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))
        object.__setattr__(self, "private", _freeze(self.private))

    def evolve(self, **changes: Any) -> "ResponseContext":
        return replace(self, **changes)

    def get_private(self, key: str, default: Any = None) -> Any:
        return self.private.get(key, default)

    def put_private(self, key: str, value: Any) -> "ResponseContext":
        updated = dict(self.private)
        updated[key] = value
        return self.evolve(private=updated)

    def header(self, name: str, default: str | None = None) -> str | None:
        value = self.headers.get(name)
        return default if value is None else str(value)

    @property
    def text(self) -> str:
        if isinstance(self.body, (bytes, bytearray)):
            return bytes(self.body).decode(errors="replace")
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body, ensure_ascii=False, default=str)

    def json(self) -> Any:
        if isinstance(self.body, (bytes, bytearray, str)):
            return json.loads(self.body)
        return self.body


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of the non-raising call form."""

    response: ResponseContext | None = None
    error: ReqError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ResponseContext:
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise ValueError("Result holds neither a response nor an error")
        return self.response


__all__ = ["Method", "RequestContext", "ResponseContext", "Result"]
