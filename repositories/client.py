"""
Supabase client initialization.

This module contains *only* the database connection setup and query execution
helpers. Repository modules call `get_supabase()` for the shared client,
`run_query()` to execute a built query with uniform error translation,
`run_paged_query()` / `run_in_query()` for reads that can exceed one response,
and `decode_rows()` to map rows onto domain objects.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Sequence, TypeVar

import httpx
from dotenv import load_dotenv
from postgrest.exceptions import APIError

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from domain.errors import PersistenceError

# Load environment variables from the .env file at the project root.
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_client: Optional[Client] = None

# PostgREST caps every response at its max-rows setting (1000 by default).
PAGE_SIZE: int = 1000

# Ids per `in_` filter; keeps GET query strings well under URL length limits.
IN_FILTER_CHUNK_SIZE: int = 100

T = TypeVar("T")


def get_supabase() -> Client:
    """
    Return the shared Supabase client, creating it on first use.

    Raises:
        PersistenceError: if SUPABASE_URL or SUPABASE_KEY is not set
            (a RuntimeError subclass).
    """

    global _client
    if _client is not None:
        return _client

    # Read credentials from the environment to avoid hard-coding secrets in code.
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise PersistenceError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise PersistenceError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    _client = create_client(supabase_url, supabase_key)
    return _client


def _execute(query: Any, action: str) -> Any:
    try:
        response = query.execute()
    except APIError as e:
        raise PersistenceError(f"Failed to {action}: {e.message}") from e
    except httpx.HTTPError as e:
        raise PersistenceError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise PersistenceError(f"Failed to {action}: {error}")
    return response


def _rows(response: Any) -> list[dict[str, Any]]:
    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def run_query(query: Any, action: str) -> list[dict[str, Any]]:
    """
    Execute a postgrest query builder and return its rows.

    Every failure mode of the client (APIError, transport errors and
    timeouts, or an `error` attribute on older response objects) is raised as
    PersistenceError with `action` in the message and the cause chained.
    """

    return _rows(_execute(query, action))


def run_paged_query(build_query: Callable[[], Any], action: str) -> list[dict[str, Any]]:
    """
    Execute a read that may exceed one PostgREST page and return every row.

    `build_query` must return a fresh builder on each call, selected with
    `count="exact"` and ordered on a unique key so pages do not overlap.
    Pages of PAGE_SIZE rows are fetched with `.range()` until the reported
    count is reached (or, without a count, a short page comes back).
    """

    all_rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        response = _execute(build_query().range(offset, offset + PAGE_SIZE - 1), action)
        page_rows = _rows(response)
        all_rows.extend(page_rows)
        offset += len(page_rows)

        if not page_rows:
            break
        total_count = getattr(response, "count", None)
        if total_count is not None:
            # A server max-rows below PAGE_SIZE shortens pages; the count still holds.
            if offset >= total_count:
                break
        elif len(page_rows) < PAGE_SIZE:
            break
    return all_rows


def chunked(values: Iterable[T], size: Optional[int] = None) -> Iterator[List[T]]:
    """Split values into lists of at most `size` (IN_FILTER_CHUNK_SIZE by default)."""

    size = size or IN_FILTER_CHUNK_SIZE
    chunk: List[T] = []
    for value in values:
        chunk.append(value)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def run_in_query(
    build_query: Callable[[Sequence[str]], Any],
    values: Iterable[str],
    action: str,
) -> list[dict[str, Any]]:
    """
    Run `build_query(chunk)` for each chunk of `values` and concatenate the rows.

    Each chunk is itself paged, so a chunk matching many rows is read in full.
    """

    ids = sorted(set(values))
    rows: list[dict[str, Any]] = []
    for chunk in chunked(ids):
        rows.extend(run_paged_query(lambda: build_query(chunk), action))
    return rows


def decode_rows(
    rows: Iterable[Mapping[str, Any]],
    decode: Callable[[Mapping[str, Any]], T],
    action: str,
) -> List[T]:
    """
    Convert stored rows with `decode`.

    A row the domain cannot represent (missing column, null id, bad number
    or timestamp) is a store problem, so it is raised as PersistenceError.
    """

    try:
        return [decode(row) for row in rows]
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise PersistenceError(f"Failed to {action}: malformed row ({e})") from e


__all__ = [
    "PAGE_SIZE",
    "IN_FILTER_CHUNK_SIZE",
    "get_supabase",
    "run_query",
    "run_paged_query",
    "run_in_query",
    "chunked",
    "decode_rows",
]
