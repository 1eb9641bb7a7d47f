"""Shared fixtures: a controllable clock and a scripted ride share API."""

import asyncio
from typing import Any

import pytest

from app.services.cache import InMemoryCacheService


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeApi:
    """Stand-in for ApiClient that serves scripted payloads per path.

    A response may be an exception instance, which is raised instead.
    Setting ``gate`` to an ``asyncio.Event`` holds every call until it is set.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    def count(self, path: str, method: str = "GET") -> int:
        return sum(1 for call in self.calls if call == (method, path))

    async def fetch_json(
        self,
        path: str,
        method: str = "GET",
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        self.calls.append((method, path))
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.get(f"{method} {path}", self.responses.get(path))
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


def location(
    id: str,
    name: str,
    category: str,
    city: str = "Vadodara",
    active: bool = True,
    display_order: int = 0,
) -> dict:
    return {
        "id": id,
        "name": name,
        "category": category,
        "city": city,
        "active": active,
        "display_order": display_order,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCacheService:
    return InMemoryCacheService(clock=clock)


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()
