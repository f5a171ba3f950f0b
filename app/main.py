import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.core.config import Settings, get_settings
from app.core.exceptions import LoyaltyError, ValidationError
from app.domain.models import utcnow
from app.services.notifier import WalletNotifier
from app.services.stamps import create_stamp_engine
from database.connection import StorageBackend, create_storage

logger = logging.getLogger(__name__)


async def loyalty_error_handler(request: Request, exc: LoyaltyError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors())
    error = ValidationError(f"Invalid request: {fields}")
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageBackend] = None,
    notifier: Optional[WalletNotifier] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        store = storage or create_storage(settings)
        await store.init_schema()
        app.state.engine = create_stamp_engine(settings, store, notifier=notifier, clock=clock)
        logger.info(f"Stamp card ready ({settings.environment}, threshold={settings.stamp_threshold})")
        yield
        # Shutdown
        await store.close()

    app = FastAPI(
        title="Stamp Card",
        description="QR stamp card loyalty API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LoyaltyError, loyalty_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include all routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
