"""Password hashing and signed bearer tokens."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    organization_id: uuid.UUID | None
    expires_at: int


def hash_password(password: str, iterations: int = 200_000) -> str:
    """Hash a password using PBKDF2-SHA256."""
    if not password:
        raise ValueError("Password is required")
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return (
        f"pbkdf2_sha256${iterations}$"
        f"{binascii.hexlify(salt).decode('ascii')}$"
        f"{binascii.hexlify(digest).decode('ascii')}"
    )


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a PBKDF2-SHA256 password hash."""
    if not password or not stored_hash:
        return False
    try:
        scheme, iterations_raw, salt_hex, digest_hex = stored_hash.split("$", 3)
        if scheme != "pbkdf2_sha256":
            return False
        iterations = int(iterations_raw)
        salt = binascii.unhexlify(salt_hex.encode("ascii"))
        expected = binascii.unhexlify(digest_hex.encode("ascii"))
    except (ValueError, binascii.Error):
        return False

    actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(actual, expected)


def issue_invite_token() -> str:
    return secrets.token_urlsafe(32)


def hash_invite_token(token: str) -> str:
    return hashlib.sha256((token or "").encode("utf-8")).hexdigest()


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - (len(data) % 4)) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("utf-8"))


def _sign(secret: str, body: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_access_token(
    secret: str,
    user_id: uuid.UUID,
    organization_id: uuid.UUID | None,
    ttl_seconds: int,
) -> str:
    if not secret:
        raise RuntimeError("auth_secret is required to issue tokens")

    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "org": str(organization_id) if organization_id else None,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    body = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{body}.{_sign(secret, body)}"


def decode_access_token(secret: str, token: str) -> TokenClaims | None:
    """Return the claims of a valid, unexpired token, else None."""
    if not secret or not token:
        return None

    try:
        body, provided_sig = token.split(".", 1)
    except ValueError:
        return None

    if not hmac.compare_digest(provided_sig, _sign(secret, body)):
        return None

    try:
        payload = json.loads(_b64url_decode(body))
    except (ValueError, binascii.Error):
        return None

    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, int) or exp <= int(time.time()):
        return None

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
        org_raw = payload.get("org")
        organization_id = uuid.UUID(str(org_raw)) if org_raw else None
    except ValueError:
        return None

    return TokenClaims(user_id=user_id, organization_id=organization_id, expires_at=exp)
