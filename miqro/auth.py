"""Per-workflow webhook authentication.

The evaluator is pure: it reads the declared policy and the credential
material already extracted from the request, and returns a decision.
"""
from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any, Mapping

from miqro.types import ApiKeyAuth, BearerAuth, NoAuth

API_KEY_HEADER = "x-api-key"
API_KEY_QUERY_PARAM = "apiKey"
AUTHORIZATION_HEADER = "authorization"

INVALID_API_KEY = "Unauthorized: Invalid API Key"
INVALID_BEARER_TOKEN = "Unauthorized: Invalid Bearer token"


@dataclass(frozen=True)
class AuthDecision:
    allowed: bool
    reason: str | None = None


ALLOW = AuthDecision(allowed=True)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def _first(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _matches(candidate: str | None, expected: str) -> bool:
    if candidate is None:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def evaluate_auth(
    auth: NoAuth | ApiKeyAuth | BearerAuth,
    headers: Mapping[str, str],
    query: Mapping[str, Any] | None = None,
) -> AuthDecision:
    """Decide allow/deny for a workflow's auth policy."""
    if isinstance(auth, ApiKeyAuth):
        candidate = _header(headers, API_KEY_HEADER) or _first((query or {}).get(API_KEY_QUERY_PARAM))
        if not _matches(candidate, auth.key):
            return AuthDecision(allowed=False, reason=INVALID_API_KEY)
        return ALLOW

    if isinstance(auth, BearerAuth):
        header = _header(headers, AUTHORIZATION_HEADER)
        expected = f"Bearer {auth.token}"
        if not header or not _matches(header[: len(expected)], expected):
            return AuthDecision(allowed=False, reason=INVALID_BEARER_TOKEN)
        return ALLOW

    return ALLOW
