from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.domain.schemas import StampAddRequest, StampCooldownResponse, StampResponse
from app.services.stamps import StampEngine

router = APIRouter()


@router.post("/add", response_model=StampResponse | StampCooldownResponse)
async def add_stamp(data: StampAddRequest, engine: StampEngine = Depends(get_engine)):
    """Add a stamp from a scanned QR code.

    The token must match the shared QR secret. A second scan within the
    cooldown window returns the current count with ``cooldown: true``.
    """
    result = await engine.add_stamp(data.identifier, data.token)

    if result.cooldown:
        return StampCooldownResponse(
            customerId=result.customer_id,
            stamps=result.stamps,
            seconds_remaining=result.seconds_remaining,
            cooldown_minutes=engine.guard.cooldown_minutes,
        )

    return StampResponse(
        customerId=result.customer_id,
        stamps=result.stamps,
        redeemed=result.redeemed,
        reward_message=result.reward_message,
    )
