"""Shared test fixtures for text-relay."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from src.relay.mapping import RelayMapping
from src.relay.models import RelayMessage
from src.relay.pipeline import RelayPipeline

UPSTREAM_URL = "https://sms.example.test"


class FakeUpstream:
    """Records outbound requests and answers with a canned response."""

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        raw: bytes | None = None,
        error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = {"code": 200, "status": "queued", "data": "ok", "guid": "abc123"} if body is None else body
        self.raw = raw
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return httpx.Response(self.status_code, content=self.raw)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def relays() -> RelayMapping:
    return RelayMapping({"alice": "bob", "15551230001": "15559870001"})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def relays_csv(tmp_path: Path):
    """Write a relay CSV and return its path."""

    def _create(content: str, name: str = "relays.csv") -> str:
        path = tmp_path / name
        path.write_text(content)
        return str(path)

    return _create


# --- Factory functions for test data ---


def make_relay_message(**kwargs: str) -> RelayMessage:
    defaults = {
        "source": "svc1",
        "destination": "alice",
        "message": "hi",
        "type": "sms",
    }
    defaults.update(kwargs)
    return RelayMessage(**defaults)


def make_pipeline(relays: RelayMapping, **kwargs: Any) -> RelayPipeline:
    defaults: dict[str, Any] = {
        "relays": relays,
        "upstream_url": UPSTREAM_URL,
        "token": "dGVzdDp0ZXN0",
        "account_id": "12345",
        "timeout": 5.0,
        "transport": None,
    }
    defaults.update(kwargs)
    return RelayPipeline(**defaults)

