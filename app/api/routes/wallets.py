from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.domain.schemas import CustomerPublic, WalletDetail, WalletResponse
from app.services.stamps import StampEngine

router = APIRouter()


@router.get("/{identifier}", response_model=WalletResponse)
async def get_wallet(identifier: str, engine: StampEngine = Depends(get_engine)):
    """Current stamp card for an existing customer (404 if unknown)."""
    customer, wallet = await engine.lookup(identifier)
    return WalletResponse(
        customer=CustomerPublic(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
        ),
        wallet=WalletDetail(
            stamps=wallet.stamps,
            last_stamped_at=wallet.last_stamped_at,
            last_redeemed_at=wallet.last_redeemed_at,
        ),
    )
