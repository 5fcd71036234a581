"""
Authentication gate: bearer header -> verified user id.

The resolved identity is returned as an `AuthContext` and passed explicitly
into every entry operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from entry_sync.dependencies import get_token_verifier
from entry_sync.errors import AuthenticationInvalid, AuthenticationMissing
from entry_sync.identity import TokenVerifier

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthContext:
    user_id: str


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationMissing()
    parts = authorization.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise AuthenticationMissing()
    return token


def authenticate(authorization: Optional[str], verifier: TokenVerifier) -> AuthContext:
    token = extract_bearer_token(authorization)
    try:
        user_id = verifier.verify(token)
    except Exception as exc:
        logger.info("Token rejected by verifier (%s)", exc.__class__.__name__)
        raise AuthenticationInvalid() from None
    return AuthContext(user_id=user_id)


def require_user(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthContext:
    """FastAPI dependency guarding every authenticated route."""
    return authenticate(authorization, verifier)
