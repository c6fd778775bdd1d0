"""Ports - interfaces/protocols for external dependencies."""

from .journal_gateway import JournalGateway, NetworkFailure

__all__ = [
    "JournalGateway",
    "NetworkFailure",
]
