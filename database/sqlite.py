import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import aiosqlite

from app.core.exceptions import StorageError
from app.domain.models import Customer, Wallet, from_iso, to_iso

from .connection import UNCONDITIONAL, StorageBackend
from .schema import SCHEMA, WALLET_COLUMN_MIGRATIONS

logger = logging.getLogger(__name__)


class SQLiteStorage(StorageBackend):
    """Embedded single-file store.

    Every operation opens its own connection in autocommit mode and commits
    before returning. The conditional wallet write runs inside
    ``BEGIN IMMEDIATE`` so the compare and the update hold the write lock
    together.
    """

    def __init__(self, database_path: str, timeout: float = 5.0):
        self.database_path = database_path
        self.timeout = timeout

    @asynccontextmanager
    async def _connect(self):
        """Get a database connection."""
        try:
            db = await aiosqlite.connect(
                self.database_path, timeout=self.timeout, isolation_level=None
            )
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot open {self.database_path}: {e}") from e
        db.row_factory = aiosqlite.Row
        try:
            yield db
        except aiosqlite.Error as e:
            logger.error(f"SQLite query failed: {e}")
            raise StorageError(str(e)) from e
        finally:
            await db.close()

    async def init_schema(self) -> None:
        """Initialize the database with schema."""
        parent = os.path.dirname(self.database_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        async with self._connect() as db:
            await db.executescript(SCHEMA)
            cursor = await db.execute("PRAGMA table_info(wallets)")
            columns = {row["name"] for row in await cursor.fetchall()}
            for column, statement in WALLET_COLUMN_MIGRATIONS.items():
                if column not in columns:
                    logger.info(f"Adding wallets.{column}")
                    await db.execute(statement)

    async def get_customer(self, identifier: str) -> Optional[Customer]:
        async with self._connect() as db:
            cursor = await db.execute(
                """SELECT id, name, email, phone, created_at
                   FROM customers
                   WHERE email = ? OR phone = ?
                   LIMIT 1""",
                (identifier, identifier),
            )
            row = await cursor.fetchone()
            return Customer.from_row(dict(row)) if row else None

    async def get_customer_by_id(self, customer_id: str) -> Optional[Customer]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, name, email, phone, created_at FROM customers WHERE id = ?",
                (customer_id,),
            )
            row = await cursor.fetchone()
            return Customer.from_row(dict(row)) if row else None

    async def create_customer(self, customer: Customer) -> None:
        row = customer.to_row()
        async with self._connect() as db:
            await db.execute(
                """INSERT OR IGNORE INTO customers (id, name, email, phone, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (row["id"], row["name"], row["email"], row["phone"], row["created_at"]),
            )

    async def get_wallet(self, customer_id: str) -> Optional[Wallet]:
        async with self._connect() as db:
            return await self._fetch_wallet(db, customer_id)

    async def create_wallet(self, customer_id: str) -> Wallet:
        async with self._connect() as db:
            await db.execute(
                """INSERT OR IGNORE INTO wallets (customer_id, stamps, last_redeemed_at, last_stamped_at)
                   VALUES (?, 0, NULL, NULL)""",
                (customer_id,),
            )
            return await self._fetch_wallet(db, customer_id)

    async def update_wallet(
        self,
        customer_id: str,
        stamps: int,
        last_redeemed_at: Optional[datetime],
        last_stamped_at: Optional[datetime],
        expected_last_stamped_at=UNCONDITIONAL,
    ) -> bool:
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                current = await self._fetch_wallet(db, customer_id)
                if current is None:
                    await db.rollback()
                    return False
                if (
                    expected_last_stamped_at is not UNCONDITIONAL
                    and current.last_stamped_at != from_iso(expected_last_stamped_at)
                ):
                    await db.rollback()
                    return False

                await db.execute(
                    """UPDATE wallets
                       SET stamps = ?, last_redeemed_at = ?, last_stamped_at = ?
                       WHERE customer_id = ?""",
                    (stamps, to_iso(last_redeemed_at), to_iso(last_stamped_at), customer_id),
                )
                await db.commit()
                return True
            except BaseException:
                await db.rollback()
                raise

    @staticmethod
    async def _fetch_wallet(db, customer_id: str) -> Optional[Wallet]:
        cursor = await db.execute(
            """SELECT customer_id, stamps, last_redeemed_at, last_stamped_at
               FROM wallets
               WHERE customer_id = ?
               LIMIT 1""",
            (customer_id,),
        )
        row = await cursor.fetchone()
        return Wallet.from_row(dict(row)) if row else None
