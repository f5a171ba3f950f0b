from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health():
    """Liveness probe for uptime pingers."""
    return {"status": "ok"}
