"""Edit-secret credentials and identity cookies for Maker Profiles.

Owning a profile means holding its handle and edit secret in two cookies.
The secret is an unguessable bearer token; it is not signed and never
rotates.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, unquote

from makerprofiles.config import (
    EDIT_SECRET_BYTES,
    HANDLE_COOKIE_NAME,
    IDENTITY_COOKIE_MAX_AGE_SECONDS,
    MAX_SECRET_LENGTH,
    MIN_SECRET_LENGTH,
    SECRET_COOKIE_NAME,
)
from makerprofiles.models import Profile
from makerprofiles.store import ProfileStore


@dataclass(frozen=True)
class Identity:
    handle: str
    secret: str


def new_edit_secret() -> str:
    """Return a fresh URL-safe edit secret (24 characters)."""
    return secrets.token_urlsafe(EDIT_SECRET_BYTES)


def is_valid_secret(value: str | None) -> bool:
    """Return True when a secret length falls within the accepted bounds."""
    return isinstance(value, str) and MIN_SECRET_LENGTH <= len(value) <= MAX_SECRET_LENGTH


def identity_cookie_header(name: str, value: str, secure: bool = False) -> str:
    """Build one long-lived, script-inaccessible Set-Cookie value."""
    parts = [
        f"{name}={quote(value, safe='')}",
        "Path=/",
        "HttpOnly",
        "SameSite=Lax",
        f"Max-Age={IDENTITY_COOKIE_MAX_AGE_SECONDS}",
    ]
    if secure:
        parts.append("Secure")
    return "; ".join(parts)


def identity_cookie_headers(handle: str, secret: str, secure: bool = False) -> list[str]:
    """Return the Set-Cookie values that bind this client to a profile."""
    return [
        identity_cookie_header(HANDLE_COOKIE_NAME, handle, secure=secure),
        identity_cookie_header(SECRET_COOKIE_NAME, secret, secure=secure),
    ]


def parse_cookie_header(raw: str | None) -> dict[str, str]:
    """Parse a Cookie request header into decoded name/value pairs.

    Pieces without a name or an ``=`` are skipped, so one malformed
    neighbour cookie does not hide the others.
    """
    cookies: dict[str, str] = {}
    for piece in (raw or "").split(";"):
        name, sep, value = piece.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[name] = unquote(value)
    return cookies


def identity_from_cookies(cookies: dict[str, str]) -> Optional[Identity]:
    """Return the presented identity.

    Returns None unless both cookies are set and the secret length is within
    the bounds a minted secret can have.
    """
    handle = cookies.get(HANDLE_COOKIE_NAME) or ""
    secret = cookies.get(SECRET_COOKIE_NAME) or ""
    if not handle or not is_valid_secret(secret):
        return None
    return Identity(handle=handle, secret=secret)


def owned_profile(store: ProfileStore, identity: Optional[Identity]) -> Optional[Profile]:
    """Return the profile the identity may edit.

    Returns:
        The stored profile when its edit secret matches the presented one,
        otherwise None. Callers do not learn whether the handle exists.
    """
    if identity is None:
        return None
    profile = store.get(identity.handle)
    if profile is None or not profile.edit_secret:
        return None
    if not hmac.compare_digest(
        profile.edit_secret.encode("utf-8"), identity.secret.encode("utf-8")
    ):
        return None
    return profile
