"""
Ports for the wallet collaborators.

Push delivery and wallet-pass generation live outside this service. After a
stamp mutation is committed, the engine hands a snapshot of the customer and
wallet to a WalletNotifier; a failing notifier never fails the stamp.
"""

import logging
from typing import Protocol

from app.domain.models import Customer, Wallet

logger = logging.getLogger(__name__)


class WalletNotifier(Protocol):
    async def on_wallet_changed(self, customer: Customer, wallet: Wallet) -> None:
        ...


class LoggingNotifier:
    """Default notifier: records the change in the log."""

    async def on_wallet_changed(self, customer: Customer, wallet: Wallet) -> None:
        logger.info(f"Wallet updated for {customer.id}: stamps={wallet.stamps}")


async def notify_safely(notifier: WalletNotifier, customer: Customer, wallet: Wallet) -> None:
    try:
        await notifier.on_wallet_changed(customer, wallet)
    except Exception as e:
        # Don't fail the stamp operation if the pass update fails
        logger.error(f"Wallet notification failed for {customer.id}: {e}")
