from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import pytest
import requests


def pytest_configure() -> None:
    """
    Keep a `src/` layout while allowing `pytest` to run without requiring an editable install.
    """

    project_root = Path(__file__).resolve().parents[1]
    src_path = project_root / "src"
    sys.path.insert(0, str(src_path))


def make_response(status_code: int, body: Any = None, *, text: Optional[str] = None) -> requests.Response:
    """Build a real `requests.Response` from a JSON-able payload or raw text."""
    resp = requests.Response()
    resp.status_code = status_code
    raw = text if text is not None else json.dumps(body)
    resp._content = raw.encode("utf-8")
    resp.encoding = "utf-8"
    return resp


class FakeSession:
    """Stands in for `requests.Session`: records GETs and replays queued responses or errors."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._queue: list[Any] = []
        self.closed = False

    def queue(self, item: Any) -> None:
        self._queue.append(item)

    def get(self, url: str, *, headers=None, timeout=None):  # type: ignore[no-untyped-def]
        self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        item = self._queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
