from pydantic import BaseModel, field_validator
from pydantic.networks import validate_email
from typing import Optional
from datetime import datetime


# ============================================
# Signup Schemas
# ============================================

class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        # The signup form posts empty inputs as ""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        """Reject malformed addresses but keep the text as typed.

        The stored email is the customer's identifier, so it must match what
        the scanner page later sends byte for byte.
        """
        if value is not None:
            validate_email(value.strip())
        return value


class CustomerPublic(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class WalletSummary(BaseModel):
    stamps: int


class SignupResponse(BaseModel):
    customer: CustomerPublic
    wallet: WalletSummary


# ============================================
# Stamp Schemas
# ============================================

class StampAddRequest(BaseModel):
    identifier: Optional[str] = None
    token: Optional[str] = None


class StampResponse(BaseModel):
    customerId: str
    stamps: int
    redeemed: bool
    reward_message: Optional[str] = None


class StampCooldownResponse(BaseModel):
    customerId: str
    stamps: int
    cooldown: bool = True
    seconds_remaining: int
    cooldown_minutes: int


# ============================================
# Wallet Schemas
# ============================================

class WalletDetail(BaseModel):
    stamps: int
    last_stamped_at: Optional[datetime] = None
    last_redeemed_at: Optional[datetime] = None


class WalletResponse(BaseModel):
    customer: CustomerPublic
    wallet: WalletDetail


# ============================================
# Errors
# ============================================

class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
