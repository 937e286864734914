"""Membership configuration: plain frozen dataclass, no pydantic.

Built once per invocation at the HTTP edge (see ``from_env``) and passed
to the handlers. Core logic never reads the environment itself.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from orbitalscan.constants import DEFAULT_STORE_NAMESPACE


@dataclass(frozen=True)
class MembershipConfig:
    webhook_secret: str | None = None
    store_namespace: str = DEFAULT_STORE_NAMESPACE
    supabase_url: str | None = None
    supabase_service_key: str | None = None

    @property
    def store_configured(self) -> bool:
        """True when both Supabase connection settings are present."""
        return bool(self.supabase_url and self.supabase_service_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MembershipConfig:
        """Read settings from ``environ`` (defaults to ``os.environ``).

        Blank values are treated as unset so a half-filled ``.env`` fails
        the same way a missing one does.
        """
        env = os.environ if environ is None else environ

        def _get(name: str) -> str | None:
            value = (env.get(name) or "").strip()
            return value or None

        return cls(
            webhook_secret=_get("HELIO_WEBHOOK_SECRET"),
            store_namespace=_get("MEMBERS_STORE_NAMESPACE") or DEFAULT_STORE_NAMESPACE,
            supabase_url=_get("SUPABASE_URL"),
            supabase_service_key=_get("SUPABASE_SERVICE_ROLE"),
        )
