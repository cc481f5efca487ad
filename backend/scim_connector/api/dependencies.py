# scim_connector/api/dependencies.py

from fastapi import Request

from scim_connector.core.config import ConnectorSettings
from scim_connector.core.crypto import CredentialVault
from scim_connector.core.identity import IdentityResolver


def get_settings(request: Request) -> ConnectorSettings:
    return request.app.state.settings


def get_vault(request: Request) -> CredentialVault:
    return request.app.state.vault


def get_resolver(request: Request) -> IdentityResolver:
    return request.app.state.resolver
