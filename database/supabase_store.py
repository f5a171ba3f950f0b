"""Networked store backed by Supabase (PostgREST over replicated Postgres).

The supabase client is blocking, so each call runs in a worker thread with
its own thread-local client. Tables come from the migration in
``database.schema.POSTGRES_SCHEMA``.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

import httpx
from postgrest.exceptions import APIError

from app.core.config import Settings
from app.core.exceptions import StorageError
from app.domain.models import Customer, Wallet, to_iso

from .connection import UNCONDITIONAL, StorageBackend, with_retry
from .supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS = "id, name, email, phone, created_at"
WALLET_COLUMNS = "customer_id, stamps, last_redeemed_at, last_stamped_at"
UNIQUE_VIOLATION = "23505"


def quote_filter_value(value: str) -> str:
    """Double-quote a value for a PostgREST logic filter such as or=(...)."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseStorage(StorageBackend):

    def __init__(self, settings: Settings, client_factory: Optional[Callable] = None):
        self.url = settings.supabase_url
        self.key = settings.supabase_secret_key
        self._client_factory = client_factory or get_supabase_client

    def _db(self):
        return self._client_factory(self.url, self.key)

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Supabase {func.__name__} failed: {e}")
            raise StorageError(str(e)) from e

    async def init_schema(self) -> None:
        """Verify the migrated tables are reachable.

        Schema is managed via Supabase migrations, not here.
        """
        await self._run(self._check_tables)
        logger.info("Supabase connection verified")

    async def get_customer(self, identifier: str) -> Optional[Customer]:
        row = await self._run(self._select_customer, identifier)
        return Customer.from_row(row) if row else None

    async def get_customer_by_id(self, customer_id: str) -> Optional[Customer]:
        row = await self._run(self._select_customer_by_id, customer_id)
        return Customer.from_row(row) if row else None

    async def create_customer(self, customer: Customer) -> None:
        await self._run(self._insert_customer, customer.to_row())

    async def get_wallet(self, customer_id: str) -> Optional[Wallet]:
        row = await self._run(self._select_wallet, customer_id)
        return Wallet.from_row(row) if row else None

    async def create_wallet(self, customer_id: str) -> Wallet:
        await self._run(self._insert_wallet, customer_id)
        return await self.get_wallet(customer_id)

    async def update_wallet(
        self,
        customer_id: str,
        stamps: int,
        last_redeemed_at: Optional[datetime],
        last_stamped_at: Optional[datetime],
        expected_last_stamped_at=UNCONDITIONAL,
    ) -> bool:
        values = {
            "stamps": stamps,
            "last_redeemed_at": to_iso(last_redeemed_at),
            "last_stamped_at": to_iso(last_stamped_at),
        }
        return await self._run(self._update_wallet, customer_id, values, expected_last_stamped_at)

    # Blocking PostgREST calls, executed in worker threads.

    @with_retry()
    def _check_tables(self) -> None:
        db = self._db()
        db.table("customers").select("id").limit(1).execute()
        db.table("wallets").select("customer_id").limit(1).execute()

    @with_retry()
    def _select_customer(self, identifier: str) -> dict | None:
        db = self._db()
        quoted = quote_filter_value(identifier)
        result = db.table("customers").select(CUSTOMER_COLUMNS).or_(
            f"email.eq.{quoted},phone.eq.{quoted}"
        ).limit(1).execute()
        return result.data[0] if result and result.data else None

    @with_retry()
    def _select_customer_by_id(self, customer_id: str) -> dict | None:
        db = self._db()
        result = db.table("customers").select(CUSTOMER_COLUMNS).eq("id", customer_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @with_retry()
    def _insert_customer(self, row: dict) -> None:
        db = self._db()
        try:
            db.table("customers").upsert(row, on_conflict="id", ignore_duplicates=True).execute()
        except APIError as e:
            # Email or phone already taken by another customer: skipped, as
            # INSERT OR IGNORE does on SQLite.
            if e.code != UNIQUE_VIOLATION:
                raise
            logger.warning(f"Customer {row['id']} not created: {e.message}")

    @with_retry()
    def _select_wallet(self, customer_id: str) -> dict | None:
        db = self._db()
        result = db.table("wallets").select(WALLET_COLUMNS).eq("customer_id", customer_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @with_retry()
    def _insert_wallet(self, customer_id: str) -> None:
        db = self._db()
        db.table("wallets").upsert({
            "customer_id": customer_id,
            "stamps": 0,
            "last_redeemed_at": None,
            "last_stamped_at": None,
        }, on_conflict="customer_id", ignore_duplicates=True).execute()

    @with_retry()
    def _update_wallet(self, customer_id: str, values: dict, expected) -> bool:
        db = self._db()
        query = db.table("wallets").update(values).eq("customer_id", customer_id)
        if expected is not UNCONDITIONAL:
            if expected is None:
                query = query.is_("last_stamped_at", "null")
            else:
                query = query.eq("last_stamped_at", to_iso(expected))
        result = query.execute()
        return bool(result and result.data)
