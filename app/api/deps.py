from fastapi import Request

from app.services.stamps import StampEngine


def get_engine(request: Request) -> StampEngine:
    """Stamp engine built at startup for this app instance."""
    return request.app.state.engine
