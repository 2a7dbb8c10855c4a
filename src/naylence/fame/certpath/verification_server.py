import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from naylence.fame.util.logging import enable_logging

from .config import TrustStoreConfig, create_verifier
from .verification_router import create_verification_router

ENV_VAR_LOG_LEVEL = "FAME_LOG_LEVEL"
ENV_VAR_FAME_APP_HOST = "FAME_APP_HOST"
ENV_VAR_FAME_APP_PORT = "FAME_APP_PORT"


def create_app(config: Optional[TrustStoreConfig] = None) -> FastAPI:
    """Create a FastAPI application serving chain verification."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        verifier = create_verifier(config or TrustStoreConfig.from_env())
        app.include_router(create_verification_router(verifier=verifier))
        yield

    return FastAPI(lifespan=lifespan)


if __name__ == "__main__":
    enable_logging(log_level=os.getenv(ENV_VAR_LOG_LEVEL, "warning"))
    app = create_app()
    host = os.getenv(ENV_VAR_FAME_APP_HOST, "0.0.0.0")
    port = int(os.getenv(ENV_VAR_FAME_APP_PORT, 8092))
    uvicorn.run(app, host=host, port=port, log_level="info")
