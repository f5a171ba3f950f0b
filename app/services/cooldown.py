import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from app.domain.models import Wallet, utcnow


@dataclass(frozen=True)
class CooldownStatus:
    allowed: bool
    seconds_remaining: int = 0


class CooldownGuard:
    """Rejects a stamp if the previous one is younger than the cooldown.

    Guards against a page refresh re-submitting the same scan. The check on
    its own is advisory; StampEngine holds the customer lock around it.
    """

    def __init__(self, cooldown_seconds: int = 120, clock: Callable[[], datetime] = utcnow):
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.clock = clock

    def check(self, wallet: Wallet) -> CooldownStatus:
        if wallet.last_stamped_at is None:
            return CooldownStatus(allowed=True)

        elapsed = self.clock() - wallet.last_stamped_at
        if elapsed >= self.cooldown:
            return CooldownStatus(allowed=True)

        remaining = (self.cooldown - elapsed).total_seconds()
        return CooldownStatus(allowed=False, seconds_remaining=math.ceil(remaining))

    @property
    def cooldown_minutes(self) -> int:
        return round(self.cooldown.total_seconds() / 60)
