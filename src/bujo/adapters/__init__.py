"""Adapters - I/O implementations of ports."""

from .http_gateway import HttpJournalGateway

__all__ = [
    "HttpJournalGateway",
]
