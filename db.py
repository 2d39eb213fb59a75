"""Supabase client and paginated table reads."""
import logging
import os

from dotenv import load_dotenv
from supabase import create_client, Client

load_dotenv()

PAGE_SIZE = 1000

_client: Client | None = None


def _env_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


def get_supabase() -> Client:
    """Process-wide client, created on first use."""
    global _client
    if _client is None:
        _client = _env_client()
    return _client


def fetch_all(client: Client, table: str, columns: str = "*", filters: dict | None = None, page_size: int = PAGE_SIZE) -> list[dict]:
    """Fetch every row matching `filters` (column -> value equality), paging with .range()."""
    all_rows = []
    offset = 0
    while True:
        query = client.table(table).select(columns)
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        r = query.range(offset, offset + page_size - 1).execute()
        data = r.data or []
        if not data:
            break
        all_rows.extend(data)
        if len(data) < page_size:
            break
        offset += page_size
    logging.getLogger(__name__).debug("Fetched %d rows from %s", len(all_rows), table)
    return all_rows
