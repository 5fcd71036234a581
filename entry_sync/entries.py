"""
Entry operations scoped to the authenticated owner.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from entry_sync.db import STORAGE_ID_FIELD, EntryStore
from entry_sync.errors import ValidationError

if TYPE_CHECKING:
    from entry_sync.auth import AuthContext

logger = logging.getLogger(__name__)

CLIENT_ID_FIELD = "id"
OWNER_FIELD = "uid"


def _has_non_finite_number(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite_number(v) for v in value.values())
    if isinstance(value, list):
        return any(_has_non_finite_number(v) for v in value)
    return False


class EntryService:
    """List, upsert and delete entries for a single caller."""

    def __init__(self, store: EntryStore):
        self.store = store

    def list_entries(self, ctx: "AuthContext") -> list[dict]:
        """All of the caller's entries, most recent timestamp first."""
        return self.store.find_by_owner(ctx.user_id)

    def upsert_entry(self, ctx: "AuthContext", payload: Any) -> None:
        """
        Insert or wholesale-replace the caller's entry with the payload's
        client id. Store-assigned and owner fields in the payload are ignored.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Entry payload must be a JSON object")
        client_id = payload.get(CLIENT_ID_FIELD)
        if not client_id:
            logger.info("Rejected entry upsert without %r", CLIENT_ID_FIELD)
            raise ValidationError("Entry id required")
        if not isinstance(client_id, str):
            raise ValidationError("Entry id must be a string")
        if _has_non_finite_number(payload):
            # NaN and Infinity are not valid JSON values.
            raise ValidationError("Entry payload must not contain NaN or Infinity")

        document = {k: v for k, v in payload.items() if k != STORAGE_ID_FIELD}
        document[OWNER_FIELD] = ctx.user_id
        self.store.upsert(ctx.user_id, client_id, document)

    def delete_entry(self, ctx: "AuthContext", client_id: str) -> None:
        """Remove the caller's entry if it exists; missing entries are not an error."""
        self.store.delete(ctx.user_id, client_id)
