"""Shared fixtures: an in-memory journal gateway with controllable completions."""

import asyncio
import itertools

import pytest


class FakeGateway:
    """
    Answers gateway calls from a routing table.

    Routes map (method, path) to a payload, an exception to raise, or a
    callable taking the request body. Unrouted calls return None. A held
    route does not complete until its event is set.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], object] = {}
        self.calls: list[tuple[str, str, dict | None]] = []
        self.holds: dict[tuple[str, str], asyncio.Event] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self._ids = itertools.count(1)

    def hold(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self.holds[(method, path)] = event
        return event

    def issue_ids(self, method: str, path: str, prefix: str = "srv") -> None:
        """Answer a route with a fresh server id on every call."""
        self.routes[(method, path)] = lambda body: {"_id": f"{prefix}{next(self._ids)}"}

    def called(self, method: str, path: str) -> list[dict | None]:
        return [body for m, p, body in self.calls if (m, p) == (method, path)]

    async def _call(self, method: str, path: str, body: dict | None = None):
        self.calls.append((method, path, body))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            held = self.holds.get((method, path))
            if held is not None:
                await held.wait()
            result = self.routes.get((method, path))
            if callable(result):
                result = result(body)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1

    async def get(self, path):
        return await self._call("GET", path)

    async def post(self, path, body):
        return await self._call("POST", path, body)

    async def delete(self, path, body):
        return await self._call("DELETE", path, body)


@pytest.fixture
def gateway():
    return FakeGateway()
