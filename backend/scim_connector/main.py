# scim_connector/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scim_connector.api import groups, service_provider, users
from scim_connector.api.error_handlers import register_error_handlers
from scim_connector.core.config import ConnectorSettings, load_settings
from scim_connector.core.crypto import CredentialVault
from scim_connector.core.identity import resolver_from_settings
from scim_connector.infra.postgres import check_connection, init_db
from scim_connector.utils.logger import setup_logger

logger = logging.getLogger(__name__)


def create_app(settings: ConnectorSettings | None = None, vault: CredentialVault | None = None) -> FastAPI:
    settings = settings or load_settings()
    vault = vault or CredentialVault(settings.key_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logger()
        if settings.auto_create_tables:
            init_db()
        check_connection()
        # Keypair exists before the first request, encrypt() never generates one
        vault.ensure_keypair()
        logger.info("✅ SCIM connector ready for %s", settings.custom_schema_urn)
        yield

    app = FastAPI(
        title="SCIM Password Capture Connector",
        version="1.0.0",
        description="Provisions identity-provider users into a relational table",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.vault = vault
    app.state.resolver = resolver_from_settings(settings)

    register_error_handlers(app)

    # Register routers
    app.include_router(users.router, tags=["Users"])
    app.include_router(groups.router, tags=["Groups"])
    app.include_router(service_provider.router, tags=["ServiceProviderConfigs"])

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
