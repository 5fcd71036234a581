"""
Dependency wiring for the FastAPI app.

The entry store and token verifier are process-wide resources built once in
the application lifespan and kept on `app.state`; request handlers reach them
through the getters below.
"""

from __future__ import annotations

from fastapi import Request

from entry_sync.config import Settings
from entry_sync.db import EntryStore, InMemoryEntryStore, SqlEntryStore
from entry_sync.entries import EntryService
from entry_sync.errors import ConfigurationError, StoreUnavailable
from entry_sync.identity import FirebaseTokenVerifier, StaticTokenVerifier, TokenVerifier


def build_entry_store(settings: Settings) -> EntryStore:
    if settings.use_in_memory_backends:
        return InMemoryEntryStore()
    if not settings.database_url:
        raise ConfigurationError(
            "DATABASE_URL config missing. Provide via environment variable DATABASE_URL"
        )
    return SqlEntryStore(settings.database_url)


def build_token_verifier(settings: Settings) -> TokenVerifier:
    if settings.static_tokens:
        return StaticTokenVerifier(settings.static_tokens)
    return FirebaseTokenVerifier.from_settings(settings)


def get_entry_store(request: Request) -> EntryStore:
    store = getattr(request.app.state, "entry_store", None)
    if store is None:
        raise StoreUnavailable()
    return store


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_entry_service(request: Request) -> EntryService:
    return EntryService(get_entry_store(request))
