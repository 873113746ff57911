from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import domain_error_handler, unhandled_error_handler
from app.api.routers import auth, relay, session
from app.core.container import AuthServices, build_services
from app.core.logging import configure_logging
from app.domain.exceptions import DomainError
from app.shared.config import Settings, get_settings


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: AuthServices | None = None) -> FastAPI:
    settings = settings or (services.settings if services is not None else get_settings())
    configure_logging(settings.log_level)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.start()
        logger.info("main: started platforms=%s", ",".join(services.adapters))
        try:
            yield
        finally:
            await services.close()
            logger.info("main: stopped")

    app = FastAPI(title="Plaza Auth API", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth.router)
    app.include_router(relay.router)
    app.include_router(session.router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
