from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.domain.schemas import CustomerPublic, SignupRequest, SignupResponse, WalletSummary
from app.services.stamps import StampEngine

router = APIRouter()


@router.post("/signup", response_model=SignupResponse)
async def signup(data: SignupRequest, engine: StampEngine = Depends(get_engine)):
    """
    Register a customer by email or phone.

    Idempotent: an existing customer is returned as-is and their stamps are
    left untouched.
    """
    customer, wallet = await engine.signup(email=data.email, phone=data.phone, name=data.name)
    return SignupResponse(
        customer=CustomerPublic(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
        ),
        wallet=WalletSummary(stamps=wallet.stamps),
    )
