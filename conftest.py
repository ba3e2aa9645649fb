"""Shared fixtures: a scripted stand-in for aiohttp.ClientSession."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

import pytest

from connectors.fakturownia import (
    FakturowniaApiConfig,
    FakturowniaClient,
    FakturowniaConnector,
    RetryConfig,
)

API_TOKEN = "test-token"
DOMAIN = "acme"


class FakeResponse:
    """Scripted HTTP response, usable as `async with session.request(...)`."""

    def __init__(
        self,
        status: int = 200,
        body: Union[str, Dict[str, Any], List[Any]] = "",
        content_type: Optional[str] = None,
        delay: float = 0.0,
    ):
        if not isinstance(body, str):
            body = json.dumps(body)
            content_type = content_type or "application/json; charset=utf-8"
        self.status = status
        self._body = body
        self.headers = {"Content-Type": content_type} if content_type else {}
        self.delay = delay

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        if self.delay:
            await asyncio.sleep(self.delay)
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


class _RaisingContext:
    def __init__(self, error: BaseException):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, *exc_info) -> None:
        return None


@dataclass
class RecordedCall:
    method: str
    url: str
    params: Dict[str, str]
    headers: Dict[str, str]
    data: Optional[bytes]

    @property
    def path(self) -> str:
        return urlparse(self.url).path

    @property
    def json(self) -> Any:
        return json.loads(self.data.decode("utf-8")) if self.data is not None else None


@dataclass
class FakeSession:
    """Replays scripted responses.

    `responses` is either one list consumed in order or a dict mapping a
    URL path to its own list. Exceptions in the script are raised when the
    request is entered.
    """
    responses: Union[List[Any], Dict[str, List[Any]]] = field(default_factory=list)
    calls: List[RecordedCall] = field(default_factory=list)
    closed: bool = False

    def request(self, method, url, params=None, headers=None, data=None):
        call = RecordedCall(method, url, dict(params or {}), dict(headers or {}), data)
        self.calls.append(call)

        if isinstance(self.responses, dict):
            script = self.responses[call.path]
        else:
            script = self.responses
        if not script:
            raise AssertionError(f"No scripted response left for {method} {url}")

        item = script.pop(0)
        if isinstance(item, BaseException):
            return _RaisingContext(item)
        return item

    async def close(self) -> None:
        self.closed = True


def make_client(
    session: FakeSession,
    max_retries: int = 3,
    timeout_seconds: float = 30.0,
    base_delay: float = 1.0,
    max_jitter: float = 0.5,
) -> FakturowniaClient:
    config = FakturowniaApiConfig(
        api_token=API_TOKEN,
        domain=DOMAIN,
        timeout_seconds=timeout_seconds,
        retry_config=RetryConfig(
            max_retries=max_retries,
            base_delay=base_delay,
            max_jitter=max_jitter,
        ),
    )
    return FakturowniaClient(config, session=session)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(fake_session) -> FakturowniaClient:
    return make_client(fake_session)


@pytest.fixture
def connector(client) -> FakturowniaConnector:
    return FakturowniaConnector(client)
