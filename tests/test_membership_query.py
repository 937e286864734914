"""Tests for the membership query handler, including round-trips through the webhook."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from orbitalscan.config import MembershipConfig
from orbitalscan.handlers.membership import handle_get_membership
from orbitalscan.handlers.webhook import handle_payment_webhook
from orbitalscan.http_types import HandlerRequest
from orbitalscan.store_backend import MembershipStore
from orbitalscan.stores.memory import InMemoryStore
from orbitalscan.stores.supabase import SupabaseConnectionError, SupabaseStore

SECRET = "whsec_test"
CONFIG = MembershipConfig(webhook_secret=SECRET)
NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _query(method: str = "GET", **params: str) -> HandlerRequest:
    return HandlerRequest(method=method, query=params)


def _record(key: str = "email:a@b.co", expires_at: str = "2025-06-01T12:00:00+00:00") -> dict:
    return {
        "identity_key": key,
        "email": "a@b.co",
        "wallet": "0xAbC",
        "plan": "monthly",
        "amount": 9.99,
        "currency": "USDT",
        "tx_hash": "0xtx",
        "provider": "helio",
        "status": "active",
        "started_at": "2025-05-01T12:00:00+00:00",
        "expires_at": expires_at,
    }


async def _seeded(*records: dict) -> InMemoryStore:
    store = InMemoryStore()
    for rec in records:
        await store.store_record(rec["identity_key"], rec)
    return store


async def _ingest(store: InMemoryStore, now: datetime = NOW, **payload: object) -> dict:
    body = {"event": "payment_succeeded", "plan": "monthly", **payload}
    resp = await handle_payment_webhook(
        HandlerRequest(
            method="POST",
            headers={"x-helio-signature": SECRET},
            body=json.dumps(body),
        ),
        CONFIG,
        store,
        now=now,
    )
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


class TestQueryRequest:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    async def test_non_get_rejected(self, method: str) -> None:
        resp = await handle_get_membership(
            _query(method, email="a@b.co"), CONFIG, InMemoryStore(), now=NOW,
        )
        assert resp.status_code == 405
        assert resp.body == "Method Not Allowed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{}, {"email": ""}, {"email": "  ", "wallet": " "}])
    async def test_missing_param(self, params: dict) -> None:
        store = AsyncMock(spec=MembershipStore)
        resp = await handle_get_membership(_query(**params), CONFIG, store, now=NOW)
        assert resp.status_code == 400
        assert resp.json() == {"ok": False, "active": False, "reason": "missing_param"}
        store.fetch_record.assert_not_called()


# ---------------------------------------------------------------------------
# Lookup results
# ---------------------------------------------------------------------------


class TestQueryResults:
    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        resp = await handle_get_membership(
            _query(email="nobody@x.io"), CONFIG, InMemoryStore(), now=NOW,
        )
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "active": False, "reason": "not_found"}

    @pytest.mark.asyncio
    async def test_active_includes_full_record(self) -> None:
        rec = _record()
        store = await _seeded(rec)
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "active": True, "record": rec}

    @pytest.mark.asyncio
    async def test_expired_omits_record(self) -> None:
        store = await _seeded(_record(expires_at="2025-04-30T12:00:00+00:00"))
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        body = resp.json()
        assert body == {"ok": True, "active": False, "reason": "expired"}
        assert "record" not in body

    @pytest.mark.asyncio
    async def test_expiring_exactly_now_is_expired(self) -> None:
        store = await _seeded(_record(expires_at=NOW.isoformat()))
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        assert resp.json()["reason"] == "expired"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_at", ["garbage", "", None])
    async def test_unparseable_expiry_fails_safe(self, expires_at: str | None) -> None:
        rec = _record()
        rec["expires_at"] = expires_at
        store = await _seeded(rec)
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        assert resp.json() == {"ok": True, "active": False, "reason": "expired"}

    @pytest.mark.asyncio
    async def test_email_param_normalized(self) -> None:
        store = await _seeded(_record())
        resp = await handle_get_membership(
            _query(email="  A@B.CO "), CONFIG, store, now=NOW,
        )
        assert resp.json()["active"] is True

    @pytest.mark.asyncio
    async def test_wallet_lookup_case_insensitive(self) -> None:
        store = await _seeded(_record(key="wallet:0xabc"))
        resp = await handle_get_membership(_query(wallet=" 0xABC "), CONFIG, store, now=NOW)
        assert resp.json()["active"] is True

    @pytest.mark.asyncio
    async def test_email_precedence_over_wallet(self) -> None:
        store = await _seeded(_record(key="wallet:0xabc"))
        resp = await handle_get_membership(
            _query(email="other@x.io", wallet="0xabc"), CONFIG, store, now=NOW,
        )
        assert resp.json()["reason"] == "not_found"


class TestQueryStoreFailures:
    @pytest.mark.asyncio
    async def test_store_not_configured(self) -> None:
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, None, now=NOW)
        assert resp.status_code == 500
        assert resp.json()["reason"] == "store_not_configured"

    @pytest.mark.asyncio
    async def test_store_error(self) -> None:
        store = AsyncMock(spec=MembershipStore)
        store.fetch_record = AsyncMock(side_effect=SupabaseConnectionError("dns"))
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "active": False, "reason": "store_unavailable"}

    @pytest.mark.asyncio
    async def test_supabase_read_error_is_store_unavailable(self) -> None:
        store = SupabaseStore("https://proj.supabase.co", "service-key")
        store._client.request = AsyncMock(side_effect=httpx.ReadError("reset"))
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "active": False, "reason": "store_unavailable"}

    @pytest.mark.asyncio
    async def test_unexpected_error(self) -> None:
        store = AsyncMock(spec=MembershipStore)
        store.fetch_record = AsyncMock(side_effect=KeyError("boom"))
        resp = await handle_get_membership(_query(email="a@b.co"), CONFIG, store, now=NOW)
        assert resp.status_code == 500
        assert resp.body == "Internal Server Error"


# ---------------------------------------------------------------------------
# Round-trip with the webhook
# ---------------------------------------------------------------------------


class TestRoundTrip:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "query_email", ["carol@example.com", "CAROL@EXAMPLE.COM", "  Carol@Example.com\t"],
    )
    async def test_email_round_trip(self, query_email: str) -> None:
        store = InMemoryStore()
        saved = await _ingest(store, email=" Carol@Example.COM ", wallet="0xW")
        resp = await handle_get_membership(_query(email=query_email), CONFIG, store, now=NOW)
        body = resp.json()
        assert body["active"] is True
        assert body["record"]["identity_key"] == saved["key"]
        assert body["record"]["email"] == "carol@example.com"
        assert body["record"]["expires_at"] == saved["expires_at"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query_wallet", ["0xAbCdEf", "0xabcdef", " 0XABCDEF "])
    async def test_wallet_round_trip(self, query_wallet: str) -> None:
        store = InMemoryStore()
        await _ingest(store, wallet="  0xAbCdEf ", plan="yearly")
        resp = await handle_get_membership(_query(wallet=query_wallet), CONFIG, store, now=NOW)
        body = resp.json()
        assert body["active"] is True
        assert body["record"]["wallet"] == "0xAbCdEf"
        assert body["record"]["plan"] == "yearly"

    @pytest.mark.asyncio
    async def test_membership_lapses_after_plan_period(self) -> None:
        store = InMemoryStore()
        await _ingest(store, email="dave@x.io")
        later = datetime(2025, 6, 1, 12, 0, 1, tzinfo=timezone.utc)
        resp = await handle_get_membership(_query(email="dave@x.io"), CONFIG, store, now=later)
        assert resp.json() == {"ok": True, "active": False, "reason": "expired"}
