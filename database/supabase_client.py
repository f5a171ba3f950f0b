import threading

from supabase import create_client, Client

# Thread-local storage for Supabase client to avoid connection pool sharing issues
_thread_local = threading.local()


def get_supabase_client(url: str, key: str) -> Client:
    """Get a thread-local Supabase client to avoid HTTP/2 connection pool issues.

    Each worker thread gets its own client instance, preventing "Server
    disconnected" errors that occur when stale pooled connections are reused
    across threads.
    """
    if not url or not key:
        raise RuntimeError(
            "Supabase credentials not configured. "
            "Set SUPABASE_URL and SUPABASE_SECRET_KEY environment variables."
        )

    if getattr(_thread_local, "credentials", None) != (url, key):
        _thread_local.client = create_client(url, key)
        _thread_local.credentials = (url, key)
    return _thread_local.client


def reset_supabase_client() -> None:
    """Reset the thread-local Supabase client.

    Call this after catching a connection error to force a fresh connection
    on the next request.
    """
    if hasattr(_thread_local, "client"):
        delattr(_thread_local, "client")
        delattr(_thread_local, "credentials")
