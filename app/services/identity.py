import logging
from typing import Optional

from app.core.exceptions import NotFound, ValidationError
from app.domain.models import Customer, Wallet, utcnow
from database.connection import StorageBackend

logger = logging.getLogger(__name__)


def clean_identifier(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class IdentityResolver:
    """Maps an email or phone to its customer, creating one when absent.

    The customer id is the identifier it was first seen with. Phone numbers
    are not normalised, so "+1555..." and "555..." are two customers.
    """

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def resolve_or_create(self, identifier: Optional[str], name: Optional[str] = None) -> Customer:
        identifier = clean_identifier(identifier)
        if not identifier:
            raise ValidationError("Missing identifier (email or phone)")

        customer = await self.storage.get_customer(identifier)
        if not customer:
            customer = await self._create(Customer.from_identifier(identifier, name))

        await self.ensure_wallet(customer.id)
        return customer

    async def register(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        name: Optional[str] = None,
    ) -> tuple[Customer, Wallet]:
        """Signup: resolve by email (or phone) and keep both contact fields."""
        email = clean_identifier(email)
        phone = clean_identifier(phone)
        identifier = email or phone
        if not identifier:
            raise ValidationError("Missing email or phone")

        customer = await self.storage.get_customer(identifier)
        if not customer:
            candidate = Customer(
                id=identifier,
                name=clean_identifier(name),
                email=email,
                phone=phone,
                created_at=utcnow(),
            )
            customer = await self._create(candidate)

        wallet = await self.ensure_wallet(customer.id)
        return customer, wallet

    async def get(self, identifier: Optional[str]) -> tuple[Customer, Wallet]:
        """Look up an existing customer without creating anything."""
        identifier = clean_identifier(identifier)
        if not identifier:
            raise ValidationError("Missing identifier (email or phone)")

        customer = await self.storage.get_customer(identifier)
        if not customer:
            raise NotFound(f"No customer for {identifier}")

        wallet = await self.storage.get_wallet(customer.id)
        if wallet is None:
            wallet = Wallet(customer_id=customer.id)
        return customer, wallet

    async def ensure_wallet(self, customer_id: str) -> Wallet:
        wallet = await self.storage.get_wallet(customer_id)
        if wallet is None:
            wallet = await self.storage.create_wallet(customer_id)
        return wallet

    async def _create(self, candidate: Customer) -> Customer:
        # Insert-if-absent: a concurrent request may have created the same
        # customer between our lookup and this insert. An insert skipped
        # because the email or phone is taken leaves no row under this id.
        await self.storage.create_customer(candidate)
        customer = await self.storage.get_customer_by_id(candidate.id)
        if not customer:
            raise ValidationError("Email or phone already belongs to another customer")
        logger.info(f"Created customer {customer.id}")
        return customer
