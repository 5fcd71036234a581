"""
Entry sync backend.

This package provides a FastAPI application that lets authenticated clients
push and pull their personal entry records, keyed by a client-generated id,
with per-user isolation and last-write-wins upserts.
"""
