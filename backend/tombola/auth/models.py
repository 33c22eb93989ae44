"""Models for the magic-link login flow (identity provider, not game identity)."""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel


class AuthState(StrEnum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    DISABLED = "disabled"
    MAGIC_LINK_SENT = "magic-link-sent"
    MAGIC_LINK_PROCESSING = "magic-link-processing"


class AuthUser(BaseModel, frozen=True):
    """User as returned by the identity provider; ``exp`` is a Unix timestamp."""

    email: str
    name: str | None = None
    sub: str | None = None
    exp: int | None = None


class VerifyResult(BaseModel, frozen=True):
    success: bool
    user: AuthUser | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class MagicLinkSession:
    """Tokens extracted from a magic-link URL after the server verified them."""

    user: AuthUser
    token: str
    refresh_token: str | None = None
