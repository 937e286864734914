"""Framework-neutral request/response envelope for the two handlers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HandlerRequest:
    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str | bytes | None = None
    query: Mapping[str, str] = field(default_factory=dict)

    def param(self, name: str) -> str | None:
        return self.query.get(name)

    def text(self) -> str:
        if self.body is None:
            return ""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass
class HandlerResponse:
    status_code: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body)


def json_response(status: int, data: dict[str, Any]) -> HandlerResponse:
    return HandlerResponse(
        status_code=status,
        body=json.dumps(data),
        headers={"Content-Type": "application/json"},
    )


def text_response(status: int, text: str) -> HandlerResponse:
    return HandlerResponse(
        status_code=status,
        body=text,
        headers={"Content-Type": "text/plain; charset=utf-8"},
    )


def method_not_allowed() -> HandlerResponse:
    return text_response(405, "Method Not Allowed")


def internal_error() -> HandlerResponse:
    return text_response(500, "Internal Server Error")
