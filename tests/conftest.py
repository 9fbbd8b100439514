from __future__ import annotations

from typing import Iterator

import pytest

from pipereq.core.options import reset_default_options


@pytest.fixture(autouse=True)
def _clean_defaults(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("PIPEREQ_CONFIG", raising=False)
    monkeypatch.delenv("NETRC", raising=False)
    reset_default_options()
    yield
    reset_default_options()
