# scim_connector/api/users.py

import logging
import re

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from scim_connector.api.dependencies import get_resolver, get_settings, get_vault
from scim_connector.api.error_handlers import ScimJSONResponse, unsupported_response
from scim_connector.core.config import ConnectorSettings
from scim_connector.core.crypto import CredentialVault
from scim_connector.core.identity import IdentityResolver
from scim_connector.core.results import Unsupported
from scim_connector.core.user import (
    UserRecord,
    create_user,
    find_users,
    get_user,
    update_user,
)
from scim_connector.infra.postgres import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scim/v2")

SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
SCIM_LIST_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:ListResponse"

# attr eq "value" - the only filter shape the identity provider sends before a create
_EQ_FILTER = re.compile(r'^\s*(\S+)\s+eq\s+"([^"]*)"\s*$', re.IGNORECASE)


class ScimName(BaseModel):
    givenName: str | None = None
    familyName: str | None = None


class ScimUserSchema(BaseModel):
    """Core SCIM user; extension schemas arrive as extra "urn:..." keys."""

    model_config = ConfigDict(extra="allow")

    schemas: list[str] = [SCIM_USER_SCHEMA]
    id: str | None = None
    userName: str | None = None
    name: ScimName | None = None
    active: bool = False
    password: str | None = None

    def extensions(self) -> dict:
        extra = self.model_extra or {}
        return {key: value for key, value in extra.items() if key.startswith("urn:")}

    def to_record(self) -> UserRecord:
        name = self.name or ScimName()
        return UserRecord(
            first_name=name.givenName,
            last_name=name.familyName,
            login_name=self.userName,
            active=self.active,
            secret=self.password,
            external_id=self.id,
        )


def to_scim(record: UserRecord, settings: ConnectorSettings, include_secret: bool = False) -> dict:
    body = {
        "schemas": [SCIM_USER_SCHEMA, settings.custom_schema_urn],
        "id": record.external_id,
        "userName": record.login_name,
        "name": {"givenName": record.first_name, "familyName": record.last_name},
        "active": record.active,
        settings.custom_schema_urn: {settings.unique_id_property: record.external_id},
    }
    if include_secret and record.secret is not None:
        body["password"] = record.secret
    return body


def parse_user_filter(filter_expr: str | None, settings: ConnectorSettings) -> dict | Unsupported:
    """
    Map a single-clause equality filter to find_users() arguments.
    Only userName and the known custom properties are accepted.
    """
    match = _EQ_FILTER.match(filter_expr or "")
    if match is None:
        return Unsupported("getUsers")

    attribute, value = match.groups()
    if attribute.lower() == "username":
        return {"login_name": value}

    prefix = settings.custom_schema_urn + ":"
    if attribute.startswith(prefix):
        prop = attribute[len(prefix):]
        if prop in settings.valid_custom_properties and prop == settings.unique_id_property:
            return {"external_id": value}

    return Unsupported("getUsers")


@router.post("/Users")
def create_user_endpoint(
    payload: ScimUserSchema,
    db: Session = Depends(get_db),
    vault: CredentialVault = Depends(get_vault),
    resolver: IdentityResolver = Depends(get_resolver),
    settings: ConnectorSettings = Depends(get_settings),
):
    external_id = resolver.resolve(payload.extensions())
    logger.info("📥 Create user %s", external_id)

    stored = create_user(db, vault, external_id, payload.to_record())
    return ScimJSONResponse(status_code=201, content=to_scim(stored, settings))


@router.put("/Users/{user_id}")
def update_user_endpoint(
    user_id: str,
    payload: ScimUserSchema,
    db: Session = Depends(get_db),
    vault: CredentialVault = Depends(get_vault),
    resolver: IdentityResolver = Depends(get_resolver),
    settings: ConnectorSettings = Depends(get_settings),
):
    external_id = resolver.resolve(payload.extensions())
    logger.info("📥 Update user %s", external_id)

    stored = update_user(db, vault, user_id, external_id, payload.to_record())
    return ScimJSONResponse(content=to_scim(stored, settings))


@router.get("/Users/{user_id}")
def get_user_endpoint(
    user_id: str,
    db: Session = Depends(get_db),
    vault: CredentialVault = Depends(get_vault),
    settings: ConnectorSettings = Depends(get_settings),
):
    user = get_user(db, vault, user_id)
    return ScimJSONResponse(content=to_scim(user, settings, include_secret=True))


@router.get("/Users")
def list_users_endpoint(
    filter: str | None = None,
    db: Session = Depends(get_db),
    settings: ConnectorSettings = Depends(get_settings),
):
    criteria = parse_user_filter(filter, settings)
    if isinstance(criteria, Unsupported):
        return unsupported_response(criteria)

    users = find_users(db, **criteria)
    return ScimJSONResponse(
        content={
            "schemas": [SCIM_LIST_SCHEMA],
            "totalResults": len(users),
            "startIndex": 1,
            "itemsPerPage": len(users),
            "Resources": [to_scim(u, settings) for u in users],
        }
    )
