"""Stamp card state machine.

A wallet moves through stamp counts 0..threshold-1 and a redemption edge
back to 0. ``WalletLedger.apply_stamp`` is pure: it returns the next wallet
and what to tell the customer; the caller persists the result in a single
write.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.config import RedemptionPolicy
from app.domain.models import Wallet, utcnow

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10


@dataclass(frozen=True)
class StampOutcome:
    wallet: Wallet
    redeemed: bool = False
    reward_message: Optional[str] = None

    @property
    def stamps(self) -> int:
        return self.wallet.stamps


class WalletLedger:

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        reward_message: str = "Congratulations! You've earned a free reward!",
        policy: RedemptionPolicy = RedemptionPolicy.NEXT_SCAN,
        clock: Callable[[], datetime] = utcnow,
    ):
        if threshold < 2:
            raise ValueError("threshold must be at least 2")
        self.threshold = threshold
        self.reward_message = reward_message
        self.policy = policy
        self.clock = clock

    @property
    def reward_at(self) -> int:
        """Stamp count whose arrival announces the reward."""
        if self.policy == RedemptionPolicy.HOLD_AT_THRESHOLD:
            return self.threshold
        return self.threshold - 1

    def apply_stamp(self, wallet: Wallet) -> StampOutcome:
        now = self.clock()

        if wallet.stamps >= self.reward_at:
            logger.info(f"Redeeming reward for {wallet.customer_id}")
            return StampOutcome(
                wallet=wallet.evolve(stamps=0, last_stamped_at=now, last_redeemed_at=now),
                redeemed=True,
            )

        stamps = wallet.stamps + 1
        message = self.reward_message if stamps == self.reward_at else None
        return StampOutcome(
            wallet=wallet.evolve(stamps=stamps, last_stamped_at=now),
            reward_message=message,
        )
