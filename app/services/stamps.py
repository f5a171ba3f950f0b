"""
Stamp engine.

Composes token validation, identity resolution, the cooldown guard and the
wallet ledger for one request. The read of the wallet, the cooldown check and
the write run inside a per-customer lock, and the write itself only applies
if ``last_stamped_at`` is unchanged since the read, so concurrent scans (in
this process or another one sharing the store) cannot double-stamp.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.config import Settings
from app.core.exceptions import StorageError
from app.core.security import TokenValidator, create_token_validator
from app.domain.models import Customer, Wallet, utcnow
from app.services.cooldown import CooldownGuard
from app.services.identity import IdentityResolver
from app.services.ledger import WalletLedger
from app.services.locks import CustomerLocks
from app.services.notifier import LoggingNotifier, WalletNotifier, notify_safely
from database.connection import StorageBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StampResult:
    customer_id: str
    stamps: int
    redeemed: bool = False
    reward_message: Optional[str] = None
    cooldown: bool = False
    seconds_remaining: int = 0


class StampEngine:

    def __init__(
        self,
        storage: StorageBackend,
        validator: TokenValidator,
        resolver: IdentityResolver,
        guard: CooldownGuard,
        ledger: WalletLedger,
        notifier: Optional[WalletNotifier] = None,
        locks: Optional[CustomerLocks] = None,
        max_attempts: int = 3,
    ):
        self.storage = storage
        self.validator = validator
        self.resolver = resolver
        self.guard = guard
        self.ledger = ledger
        self.notifier = notifier or LoggingNotifier()
        self.locks = locks or CustomerLocks()
        self.max_attempts = max_attempts

    async def signup(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        name: Optional[str] = None,
    ) -> tuple[Customer, Wallet]:
        return await self.resolver.register(email=email, phone=phone, name=name)

    async def lookup(self, identifier: Optional[str]) -> tuple[Customer, Wallet]:
        return await self.resolver.get(identifier)

    async def add_stamp(self, identifier: Optional[str], token: Optional[str]) -> StampResult:
        """Add one stamp for ``identifier`` if ``token`` matches the QR secret.

        Raises Unauthorized before touching storage, ValidationError for an
        empty identifier, and StorageError when the wallet keeps changing
        underneath us.
        """
        self.validator.authorize(token)
        customer = await self.resolver.resolve_or_create(identifier)

        async with self.locks.hold(customer.id):
            for attempt in range(1, self.max_attempts + 1):
                wallet = await self.resolver.ensure_wallet(customer.id)

                status = self.guard.check(wallet)
                if not status.allowed:
                    logger.warning(
                        f"Cooldown active for {customer.id}: {status.seconds_remaining}s remaining"
                    )
                    return StampResult(
                        customer_id=customer.id,
                        stamps=wallet.stamps,
                        cooldown=True,
                        seconds_remaining=status.seconds_remaining,
                    )

                outcome = self.ledger.apply_stamp(wallet)
                written = await self.storage.update_wallet(
                    customer.id,
                    stamps=outcome.wallet.stamps,
                    last_redeemed_at=outcome.wallet.last_redeemed_at,
                    last_stamped_at=outcome.wallet.last_stamped_at,
                    expected_last_stamped_at=wallet.last_stamped_at,
                )
                if written:
                    break
                logger.warning(
                    f"Wallet for {customer.id} changed during stamp, re-reading ({attempt}/{self.max_attempts})"
                )
            else:
                raise StorageError(f"Wallet for {customer.id} kept changing; retry the request")

        logger.info(
            f"Stamp for {customer.id}: stamps={outcome.stamps}, redeemed={outcome.redeemed}"
        )
        await notify_safely(self.notifier, customer, outcome.wallet)

        return StampResult(
            customer_id=customer.id,
            stamps=outcome.stamps,
            redeemed=outcome.redeemed,
            reward_message=outcome.reward_message,
        )


def create_stamp_engine(
    settings: Settings,
    storage: StorageBackend,
    notifier: Optional[WalletNotifier] = None,
    clock: Callable[[], datetime] = utcnow,
) -> StampEngine:
    """Wire the engine from settings and an already-selected storage backend."""
    return StampEngine(
        storage=storage,
        validator=create_token_validator(settings),
        resolver=IdentityResolver(storage),
        guard=CooldownGuard(settings.cooldown_seconds, clock=clock),
        ledger=WalletLedger(
            threshold=settings.stamp_threshold,
            reward_message=settings.reward_message,
            policy=settings.redemption_policy,
            clock=clock,
        ),
        notifier=notifier,
    )
