"""Remote journal store interface."""

from typing import Any, Protocol


class NetworkFailure(Exception):
    """Raised when a remote call fails at the transport or HTTP level."""

    def __init__(self, method: str, path: str, reason: str):
        super().__init__(f"{method} {path} failed: {reason}")
        self.method = method
        self.path = path
        self.reason = reason


class JournalGateway(Protocol):
    """
    Interface for the remote journal JSON API.

    Each call resolves to the response's data member or raises
    NetworkFailure. No retry and no ordering between concurrent calls.
    """

    async def get(self, path: str) -> Any:
        """GET a resource. Returns None when the store has no such entity."""
        ...

    async def post(self, path: str, body: dict) -> Any:
        """POST a JSON body."""
        ...

    async def delete(self, path: str, body: dict) -> Any:
        """DELETE with a JSON body."""
        ...
