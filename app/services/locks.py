import asyncio
from contextlib import asynccontextmanager


class CustomerLocks:
    """Per-customer critical sections for the current process.

    Entries are dropped once no coroutine holds or waits on them, so the
    table only grows with concurrent customers, not with all customers.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, customer_id: str):
        lock = self._locks.setdefault(customer_id, asyncio.Lock())
        self._waiters[customer_id] = self._waiters.get(customer_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[customer_id] -= 1
            if not self._waiters[customer_id]:
                del self._waiters[customer_id]
                del self._locks[customer_id]

    def __len__(self) -> int:
        return len(self._locks)
