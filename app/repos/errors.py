from __future__ import annotations


class StoreError(Exception):
    """A store call failed (connection, permission, constraint).

    Repositories raise this for every backend failure so services never
    depend on driver-specific exception types.
    """


class DuplicateError(StoreError):
    """A unique key already exists."""
