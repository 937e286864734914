"""InMemoryStore: dictionary-backed MembershipStore for tests and local runs."""

from __future__ import annotations

import json
from typing import Any

from orbitalscan.constants import DEFAULT_STORE_NAMESPACE


class InMemoryStore:
    """Process-local MembershipStore.

    Records pass through ``json`` on the way in and out, so callers can't
    mutate stored state and non-serializable values fail at write time.
    Reads always see the last completed write.
    """

    def __init__(self, namespace: str = DEFAULT_STORE_NAMESPACE) -> None:
        self.namespace = namespace
        self._records: dict[str, str] = {}
        self.writes = 0

    async def store_record(self, key: str, record: dict[str, Any]) -> None:
        self._records[key] = json.dumps(record)
        self.writes += 1

    async def fetch_record(self, key: str) -> dict[str, Any] | None:
        raw = self._records.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def __len__(self) -> int:
        return len(self._records)
