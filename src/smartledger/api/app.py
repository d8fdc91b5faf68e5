"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartledger.config import get_settings
from smartledger.errors import (
    AccountNotFound,
    InsufficientBalance,
    InsufficientLiquidity,
    LedgerError,
    SlippageExceeded,
    StaleOrInvalidPrice,
    Unauthorized,
    ZeroAmount,
)
from smartledger.ledger.database import close_db, init_db
from smartledger.oracle.factory import close_oracle
from smartledger.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)

# HTTP status per rejected-operation kind
ERROR_STATUS = {
    Unauthorized: 403,
    AccountNotFound: 404,
    ZeroAmount: 400,
    InsufficientBalance: 409,
    InsufficientLiquidity: 409,
    SlippageExceeded: 409,
    StaleOrInvalidPrice: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    yield
    # Shutdown
    await close_oracle()
    await close_db()


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Surface a rejected operation verbatim."""
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code}: {exc}")
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": str(exc)})


async def lock_timeout_handler(request: Request, exc: LockTimeoutError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"error": "busy", "detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "invalid_request", "detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="smartledger API",
        description="Custodial proxy accounts with an oracle-priced swap pool",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(LockTimeoutError, lock_timeout_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    # Register routes
    from smartledger.api.routes import admin, health, oracle, pool, wallets

    app.include_router(health.router, tags=["Health"])
    app.include_router(wallets.router, prefix="/api/v1", tags=["Wallets"])
    app.include_router(pool.router, prefix="/api/v1", tags=["Pool"])
    app.include_router(oracle.router, prefix="/api/v1", tags=["Oracle"])
    app.include_router(admin.router, prefix="/api/v1", tags=["Admin"])

    return app
