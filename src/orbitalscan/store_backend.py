"""Abstract persistence interface for membership records.

Defines the MembershipStore Protocol both handlers depend on. Concrete
implementations live in ``orbitalscan.stores``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class StoreError(Exception):
    """Base exception for membership store failures (read or write)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class MembershipStore(Protocol):
    """Async key-value store of JSON membership records.

    Keys are normalized identity keys (``email:...`` / ``wallet:...``).
    Implementations must be strongly consistent: a fetch observes the most
    recent completed store for the same key. ``store_record`` overwrites.
    Failures surface as ``StoreError``; nothing is retried here.
    """

    async def store_record(self, key: str, record: dict[str, Any]) -> None: ...

    async def fetch_record(self, key: str) -> dict[str, Any] | None: ...
