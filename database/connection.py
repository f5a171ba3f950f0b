import abc
import functools
import logging
import time
from datetime import datetime
from typing import Callable, Optional, TypeVar

import httpx

from app.core.config import Settings, StorageKind
from app.domain.models import Customer, Wallet

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Sentinel for update_wallet: no compare-and-swap requested.
UNCONDITIONAL = object()


class StorageBackend(abc.ABC):
    """Storage surface shared by the embedded and networked stores.

    All methods are coroutines. A write followed by a read through the same
    backend returns the new value.
    """

    @abc.abstractmethod
    async def init_schema(self) -> None:
        """Create tables and indexes. Safe to call on an initialized store."""

    @abc.abstractmethod
    async def get_customer(self, identifier: str) -> Optional[Customer]:
        """Find a customer whose email or phone equals ``identifier``."""

    @abc.abstractmethod
    async def get_customer_by_id(self, customer_id: str) -> Optional[Customer]:
        ...

    @abc.abstractmethod
    async def create_customer(self, customer: Customer) -> None:
        """Insert ``customer`` unless a conflicting row already exists."""

    @abc.abstractmethod
    async def get_wallet(self, customer_id: str) -> Optional[Wallet]:
        ...

    @abc.abstractmethod
    async def create_wallet(self, customer_id: str) -> Wallet:
        """Insert an empty wallet if missing and return the stored one."""

    @abc.abstractmethod
    async def update_wallet(
        self,
        customer_id: str,
        stamps: int,
        last_redeemed_at: Optional[datetime],
        last_stamped_at: Optional[datetime],
        expected_last_stamped_at=UNCONDITIONAL,
    ) -> bool:
        """Write all wallet fields in one statement.

        When ``expected_last_stamped_at`` is given, the write only applies if
        the stored ``last_stamped_at`` still equals it. Returns whether the
        row was written.
        """

    async def close(self) -> None:
        pass


def create_storage(settings: Settings) -> StorageBackend:
    """Pick the backend once, at process start."""
    kind = settings.storage_backend
    if kind == StorageKind.AUTO:
        kind = StorageKind.SUPABASE if settings.supabase_configured else StorageKind.SQLITE

    if kind == StorageKind.SUPABASE:
        from .supabase_store import SupabaseStorage
        logger.info(f"Using Supabase storage at {settings.supabase_url}")
        return SupabaseStorage(settings)

    from .sqlite import SQLiteStorage
    logger.info(f"Using local SQLite storage at {settings.database_path}")
    return SQLiteStorage(settings.database_path)


def with_retry(max_retries: int = 2, delay: float = 0.1) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator that retries database operations on connection errors.

    Handles transient HTTP connection errors like "Server disconnected" by
    resetting the thread's client and retrying.

    Args:
        max_retries: Maximum number of retry attempts (default 2)
        delay: Delay in seconds between retries (default 0.1)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            from .supabase_client import reset_supabase_client

            last_error = None
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except (httpx.RemoteProtocolError, httpx.ConnectError) as e:
                    last_error = e
                    if attempt < max_retries:
                        logger.warning(
                            f"Connection error in {func.__name__}, retrying ({attempt + 1}/{max_retries}): {e}"
                        )
                        reset_supabase_client()
                        time.sleep(delay)
                    else:
                        logger.error(f"Connection error in {func.__name__} after {max_retries} retries: {e}")
                        raise
            raise last_error  # Should never reach here, but for type safety
        return wrapper
    return decorator
