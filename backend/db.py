"""
Database connection helper.

This module centralizes how connections are created. We open a new
psycopg connection per call with a `dict_row` row factory, so repository
code reads columns by name.

Why this exists:
- Single place to swap connection strategy (pooling, async driver, etc.).
- Keeps repository code focused on SQL and row mapping.
- Maps driver-level transport failures to `StorageTransportError`.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")

A new connection per call also means the source readers can run on
separate threads without sharing a connection.
"""

from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg.rows import dict_row

from errors import StorageTransportError
from settings import settings


@contextmanager
def get_conn() -> Iterator[psycopg.Connection]:
    """Yield a psycopg connection using `settings.db_url`.

    The connection commits when the block exits cleanly and rolls back
    otherwise. `psycopg.OperationalError` (refused connection, dropped
    socket, timeout) surfaces as `StorageTransportError`; other database
    errors propagate unchanged.
    """

    try:
        with psycopg.connect(
            settings.db_url,
            connect_timeout=settings.db_connect_timeout,
            row_factory=dict_row,
        ) as conn:
            yield conn
    except psycopg.OperationalError as e:
        raise StorageTransportError(f"Database unreachable: {e}") from e
