"""
Pydantic schemas for the entry sync API.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["ok"]


class SuccessResponse(BaseModel):
    success: Literal[True]


class ErrorResponse(BaseModel):
    error: str
