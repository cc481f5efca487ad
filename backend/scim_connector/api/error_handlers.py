"""SCIM error responses.

The identity provider only understands the SCIM error body
(``urn:ietf:params:scim:api:messages:2.0:Error``), so every connector failure
and every unsupported capability is rendered in that shape, with the stable
connector code carried in ``errorCode``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from scim_connector.core.errors import (
    ConnectorError,
    EncryptionError,
    MissingIdentifier,
    NotFound,
    StorageError,
    ValidationError,
)
from scim_connector.core.results import Unsupported

logger = logging.getLogger(__name__)

SCIM_ERROR_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:Error"

STATUS_BY_ERROR = {
    MissingIdentifier: 400,
    ValidationError: 400,
    NotFound: 404,
    StorageError: 500,
    EncryptionError: 500,
}


class ScimJSONResponse(JSONResponse):
    media_type = "application/scim+json"


def status_for(error: ConnectorError) -> int:
    for error_type, status in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status
    return 500


def scim_error(status_code: int, code: str, detail: str) -> ScimJSONResponse:
    return ScimJSONResponse(
        status_code=status_code,
        content={
            "schemas": [SCIM_ERROR_SCHEMA],
            "status": str(status_code),
            "errorCode": code,
            "detail": detail,
        },
    )


def unsupported_response(result: Unsupported) -> ScimJSONResponse:
    return scim_error(501, result.code, result.message)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ConnectorError)
    async def connector_error_handler(request: Request, exc: ConnectorError) -> ScimJSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return scim_error(status_code, exc.code, exc.message)
