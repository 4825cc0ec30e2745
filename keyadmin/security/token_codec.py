"""Signed, stateless session tokens: ``<base64url(payload JSON)>.<hex HMAC-SHA256>``.

This module is the only implementation of the token scheme. The request filter
and the route-level session dependency both call verify_session_token, so the
two call sites can never disagree on the signature computation.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Optional

SESSION_DAYS = 7
SESSION_TTL_MS = SESSION_DAYS * 24 * 60 * 60 * 1000
_SEPARATOR = "."


@dataclass(frozen=True)
class SessionPayload:
    iat: int  # ms timestamp
    exp: int  # ms timestamp


def now_ms() -> int:
    return int(time.time() * 1000)


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Length check first, then a full-length comparison that never returns early on a differing byte."""
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def sign_payload(payload_b64: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def issue_session_token(secret: str, now: Optional[int] = None) -> str:
    """Issue a token valid for SESSION_DAYS from `now` (ms)."""
    issued_at = now_ms() if now is None else now
    payload = {"iat": issued_at, "exp": issued_at + SESSION_TTL_MS}
    # Compact separators keep the encoding identical to JSON.stringify output.
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{payload_b64}{_SEPARATOR}{sign_payload(payload_b64, secret)}"


def verify_session_token(
    token: Optional[str], secret: str, now: Optional[int] = None
) -> Optional[SessionPayload]:
    """Return the payload of a valid, unexpired token, else None."""
    if not token:
        return None
    parts = token.split(_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    payload_b64, signature = parts

    expected = sign_payload(payload_b64, secret)
    if not constant_time_equals(signature.encode("utf-8"), expected.encode("utf-8")):
        return None

    try:
        payload = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    current = now_ms() if now is None else now
    if current >= exp:
        return None
    iat = payload.get("iat")
    if isinstance(iat, bool) or not isinstance(iat, (int, float)):
        iat = 0
    return SessionPayload(iat=int(iat), exp=int(exp))
