"""
HTTP routes for the entry sync API.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from entry_sync.auth import AuthContext, require_user
from entry_sync.dependencies import get_entry_service
from entry_sync.entries import EntryService
from entry_sync.schemas import ErrorResponse, HealthResponse, SuccessResponse

health_router = APIRouter()
router = APIRouter()

_AUTH_ERRORS = {401: {"model": ErrorResponse}}


@health_router.get("/health", response_model=HealthResponse)
def health():
    """Liveness probe; reachable without credentials."""
    return HealthResponse(status="ok")


@router.get("/entries", response_model=list[dict[str, Any]], responses=_AUTH_ERRORS)
def list_entries(
    ctx: AuthContext = Depends(require_user),
    service: EntryService = Depends(get_entry_service),
):
    return service.list_entries(ctx)


@router.post(
    "/entries",
    response_model=SuccessResponse,
    responses={400: {"model": ErrorResponse}, **_AUTH_ERRORS},
)
def upsert_entry(
    payload: Any = Body(default=None),
    ctx: AuthContext = Depends(require_user),
    service: EntryService = Depends(get_entry_service),
):
    service.upsert_entry(ctx, payload if payload is not None else {})
    return SuccessResponse(success=True)


@router.delete(
    "/entries/{client_id}", response_model=SuccessResponse, responses=_AUTH_ERRORS
)
def delete_entry(
    client_id: str,
    ctx: AuthContext = Depends(require_user),
    service: EntryService = Depends(get_entry_service),
):
    service.delete_entry(ctx, client_id)
    return SuccessResponse(success=True)
