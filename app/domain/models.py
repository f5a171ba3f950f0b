from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp the way the stores keep it (ISO-8601, UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value) -> Optional[datetime]:
    """Parse a stored timestamp. Naive values are treated as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_email(identifier: str) -> bool:
    return "@" in identifier


@dataclass(frozen=True)
class Customer:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_identifier(cls, identifier: str, name: Optional[str] = None) -> "Customer":
        """New customer keyed by the first identifier it was seen with."""
        return cls(
            id=identifier,
            name=name,
            email=identifier if is_email(identifier) else None,
            phone=None if is_email(identifier) else identifier,
            created_at=utcnow(),
        )

    @classmethod
    def from_row(cls, row: dict) -> "Customer":
        return cls(
            id=row["id"],
            name=row.get("name"),
            email=row.get("email"),
            phone=row.get("phone"),
            created_at=from_iso(row.get("created_at")),
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "created_at": to_iso(self.created_at),
        }


@dataclass(frozen=True)
class Wallet:
    customer_id: str
    stamps: int = 0
    last_stamped_at: Optional[datetime] = None
    last_redeemed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Wallet":
        return cls(
            customer_id=row["customer_id"],
            stamps=row.get("stamps") or 0,
            last_stamped_at=from_iso(row.get("last_stamped_at")),
            last_redeemed_at=from_iso(row.get("last_redeemed_at")),
        )

    def evolve(self, **changes) -> "Wallet":
        return replace(self, **changes)
