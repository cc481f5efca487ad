# scim_connector/api/service_provider.py

from fastapi import APIRouter

from scim_connector.core.capabilities import IMPLEMENTED_CAPABILITIES, UNSUPPORTED_CAPABILITIES

router = APIRouter(prefix="/scim/v2")

SERVICE_PROVIDER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:ServiceProviderConfig"


@router.get("/ServiceProviderConfigs")
def service_provider_configs():
    """Capabilities the identity provider may use with this connector."""
    return {
        "schemas": [SERVICE_PROVIDER_SCHEMA],
        "umCapabilities": [c.value for c in IMPLEMENTED_CAPABILITIES],
        "unsupportedCapabilities": [c.value for c in UNSUPPORTED_CAPABILITIES],
        "filter": {"supported": True},
        "patch": {"supported": False},
        "bulk": {"supported": False},
        "changePassword": {"supported": False},
    }
