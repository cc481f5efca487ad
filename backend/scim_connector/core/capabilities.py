# scim_connector/core/capabilities.py

from enum import Enum


class UserManagementCapability(str, Enum):
    PUSH_NEW_USERS = "PUSH_NEW_USERS"
    PUSH_PROFILE_UPDATES = "PUSH_PROFILE_UPDATES"
    PUSH_PASSWORD_UPDATES = "PUSH_PASSWORD_UPDATES"
    PUSH_USER_DEACTIVATION = "PUSH_USER_DEACTIVATION"


# Static declaration read by the identity provider when the app is configured
IMPLEMENTED_CAPABILITIES = (
    UserManagementCapability.PUSH_NEW_USERS,
    UserManagementCapability.PUSH_PROFILE_UPDATES,
)

UNSUPPORTED_CAPABILITIES = tuple(
    c for c in UserManagementCapability if c not in IMPLEMENTED_CAPABILITIES
)
