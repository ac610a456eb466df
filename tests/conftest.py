"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from traffic_ledger.logging_setup import reset_logging
from traffic_ledger.reconcile.models import AsyncQuery

_PCE_ENV = {
    "TRAFFIC_LEDGER_PCE_FQDN": "pce.example.com",
    "TRAFFIC_LEDGER_PCE_PORT": "8443",
    "TRAFFIC_LEDGER_PCE_ORG": "1",
    "TRAFFIC_LEDGER_API_USER": "api_user",
    "TRAFFIC_LEDGER_API_KEY": "api_key",
}


class FakeRegistry:
    """In-memory query registry that records every remote call."""

    def __init__(
        self,
        queries: list[AsyncQuery] | None = None,
        results: dict[str, list[Any]] | None = None,
        *,
        list_error: Exception | None = None,
        fetch_errors: dict[str, Exception] | None = None,
    ) -> None:
        self.queries = list(queries or [])
        self.results = dict(results or {})
        self.list_error = list_error
        self.fetch_errors = dict(fetch_errors or {})
        self.list_calls = 0
        self.fetch_calls: list[str] = []

    def list_queries(self) -> list[AsyncQuery]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.queries)

    def fetch_result(self, query: AsyncQuery) -> list[Any]:
        self.fetch_calls.append(query.href)
        error = self.fetch_errors.get(query.href)
        if error is not None:
            raise error
        return list(self.results.get(query.href, []))

    def close(self) -> None:
        return None

    @property
    def remote_calls(self) -> int:
        return self.list_calls + len(self.fetch_calls)


@pytest.fixture(autouse=True)
def _isolated_logging(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("TRAFFIC_LEDGER_LOG_FILE", str(tmp_path / "traffic-ledger.log"))
    yield
    reset_logging()


@pytest.fixture()
def pce_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set the minimum environment required for PCE commands."""
    for name, value in _PCE_ENV.items():
        monkeypatch.setenv(name, value)
    return dict(_PCE_ENV)


def write_ledger(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path
