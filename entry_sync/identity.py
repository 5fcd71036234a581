"""
Identity verification: resolve a bearer token to a stable user id.

Firebase Authentication ID tokens are verified with firebase-admin in
production; a static token map stands in for local runs and tests.
"""

from __future__ import annotations

import logging
from typing import Mapping, Protocol

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions

from entry_sync.config import Settings

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "entry-sync"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class InvalidCredential(Exception):
    """The token is expired, forged, revoked or malformed."""


class TokenVerifier(Protocol):
    def verify(self, token: str) -> str:
        ...


class StaticTokenVerifier:
    """Accepts a fixed set of tokens, each mapped to a user id."""

    def __init__(self, tokens: Mapping[str, str]):
        self.tokens = dict(tokens)

    def verify(self, token: str) -> str:
        uid = self.tokens.get(token)
        if not uid:
            raise InvalidCredential("Unknown token")
        return uid


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens against a service-account app."""

    def __init__(self, app: firebase_admin.App):
        self.app = app

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebaseTokenVerifier":
        try:
            return cls(firebase_admin.get_app(FIREBASE_APP_NAME))
        except ValueError:
            pass
        credential = credentials.Certificate(service_account_source(settings))
        app = firebase_admin.initialize_app(credential, name=FIREBASE_APP_NAME)
        logger.info("Firebase app initialized for project %s", app.project_id)
        return cls(app)

    def verify(self, token: str) -> str:
        try:
            decoded = auth.verify_id_token(token, app=self.app)
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise InvalidCredential(str(exc)) from exc
        uid = decoded.get("uid")
        if not uid:
            raise InvalidCredential("Token has no uid claim")
        return uid


def service_account_source(settings: Settings) -> dict | str:
    """
    Service-account info from the environment when the key and email are
    present, otherwise the path of a JSON key file.
    """
    if settings.firebase_private_key and settings.firebase_client_email:
        return {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "token_uri": GOOGLE_TOKEN_URI,
        }
    return settings.firebase_credentials_path
