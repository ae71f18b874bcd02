"""
Supabase connection for the profile admin panel.

Every reader and writer of the `profiled`, `tags` and `profiledtags` tables
shares one client, created on first use from SUPABASE_URL and
SUPABASE_API_KEY (read from the environment or a .env file).
"""
import os
from typing import Optional
from dotenv import load_dotenv
from supabase import create_client, Client

load_dotenv()

SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL")
SUPABASE_API_KEY: Optional[str] = os.getenv("SUPABASE_API_KEY")

# Tables the admin panel reads and writes
REVIEW_TABLES = ('profiled', 'tags', 'profiledtags')

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get the shared Supabase client, creating it on first call.

    Returns:
        Client: Configured Supabase client

    Raises:
        ValueError: If SUPABASE_URL or SUPABASE_API_KEY are not set
    """
    global _supabase_client

    if _supabase_client is None:
        if not SUPABASE_URL:
            raise ValueError("SUPABASE_URL environment variable is not set")
        if not SUPABASE_API_KEY:
            raise ValueError("SUPABASE_API_KEY environment variable is not set")

        _supabase_client = create_client(SUPABASE_URL, SUPABASE_API_KEY)

    return _supabase_client


def count_rows(table: str) -> int:
    """
    Exact row count of one table, without fetching rows.

    Raises:
        Exception: Whatever the Supabase client raises if the table is unreachable
    """
    client = get_supabase_client()
    result = client.table(table).select('*', count='exact', head=True).execute()
    return result.count if result.count is not None else 0


if __name__ == "__main__":
    print("Profile admin panel: checking Supabase tables...")
    print(f"URL: {SUPABASE_URL}")
    print(f"API Key: {'*' * 20 if SUPABASE_API_KEY else 'Not set'}")

    try:
        get_supabase_client()
    except ValueError as e:
        print(f"✗ Error: {e}")
    else:
        for table in REVIEW_TABLES:
            try:
                print(f"✓ {table}: {count_rows(table)} rows")
            except Exception as e:
                print(f"✗ {table}: {e}")
