"""SupabaseStore: MembershipStore over Supabase's PostgREST API.

Self-contained: uses raw httpx, no supabase-py dependency. One row per
identity in the ``members`` table (see ``sql/members.sql``), upserted on
``identity_key``. PostgREST reads go to the primary, so a fetch sees the
last committed upsert.

Endpoints (relative to ``<SUPABASE_URL>/rest/v1``):
- Read:  GET  /{table}?identity_key=eq.{key}&select=*&limit=1 -> JSON array
- Write: POST /{table}?on_conflict=identity_key with
  ``Prefer: resolution=merge-duplicates,return=minimal`` -> 201, empty body
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from orbitalscan.constants import DEFAULT_STORE_NAMESPACE
from orbitalscan.store_backend import StoreError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class SupabaseError(StoreError):
    """Base exception for Supabase operations."""


class SupabaseAuthError(SupabaseError):
    """401/403: bad service key or row-level security refusal."""


class SupabaseNotFoundError(SupabaseError):
    """404: table does not exist."""


class SupabaseConflictError(SupabaseError):
    """409: constraint violation the upsert could not resolve."""


class SupabaseServerError(SupabaseError):
    """5xx: server-side error."""


class SupabaseConnectionError(SupabaseError):
    """Network/DNS failure, or any other transport error (reset, bad URL)."""


class SupabaseTimeoutError(SupabaseError):
    """Request timeout."""


_STATUS_MAP: dict[int, type[SupabaseError]] = {
    401: SupabaseAuthError,
    403: SupabaseAuthError,
    404: SupabaseNotFoundError,
    409: SupabaseConflictError,
}

_UPSERT_PREFER = "resolution=merge-duplicates,return=minimal"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SupabaseStore:
    """Async MembershipStore backed by a Supabase table.

    Constructor accepts explicit params, no env-var loading. The service
    role key goes in both ``apikey`` and ``Authorization: Bearer`` headers
    per Supabase convention. Intended to live for a single invocation;
    use as an async context manager.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = DEFAULT_STORE_NAMESPACE,
    ) -> None:
        base_url = url.rstrip("/") + "/rest/v1"
        self._table = table
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            },
            timeout=httpx.Timeout(connect=5.0, read=10.0, write=10.0, pool=5.0),
        )

    # -- internal request dispatcher -----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and map errors to the Supabase exception hierarchy."""
        try:
            response = await self._client.request(
                method, endpoint, params=params, json=json_data, headers=headers,
            )
        except httpx.ConnectError as exc:
            raise SupabaseConnectionError(str(exc)) from exc
        except httpx.TimeoutException as exc:
            raise SupabaseTimeoutError(str(exc)) from exc
        except httpx.TransportError as exc:
            raise SupabaseConnectionError(str(exc)) from exc

        if response.status_code >= 400:
            body = response.text
            exc_cls = _STATUS_MAP.get(response.status_code)
            if exc_cls is not None:
                raise exc_cls(body, status_code=response.status_code)
            if response.status_code >= 500:
                raise SupabaseServerError(body, status_code=response.status_code)
            raise SupabaseError(body, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SupabaseError(
                f"Non-JSON response body: {exc}", status_code=response.status_code,
            ) from exc

    # -- MembershipStore protocol --------------------------------------------

    async def fetch_record(self, key: str) -> dict[str, Any] | None:
        """GET the row for ``key``. Returns None when no row exists."""
        rows = await self._request(
            "GET",
            f"/{self._table}",
            params={"identity_key": f"eq.{key}", "select": "*", "limit": "1"},
        )
        if not rows:
            return None
        if not isinstance(rows, list) or not isinstance(rows[0], dict):
            raise SupabaseError(f"Unexpected response shape for {key}.")
        return rows[0]

    async def store_record(self, key: str, record: dict[str, Any]) -> None:
        """Upsert ``record`` under ``key``, replacing any existing row."""
        row = dict(record)
        row["identity_key"] = key
        await self._request(
            "POST",
            f"/{self._table}",
            params={"on_conflict": "identity_key"},
            json_data=row,
            headers={"Prefer": _UPSERT_PREFER},
        )
        logger.debug("Upserted %s into %s.", key, self._table)

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SupabaseStore:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
