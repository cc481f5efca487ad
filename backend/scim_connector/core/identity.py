# scim_connector/core/identity.py

from collections.abc import Mapping
from typing import Any

from scim_connector.core.errors import MissingIdentifier


class IdentityResolver:
    """Pulls the caller's immutable id out of the custom schema extension."""

    def __init__(self, schema_key: str, property_name: str):
        self.schema_key = schema_key
        self.property_name = property_name

    def resolve(self, extensions: Mapping[str, Any] | None) -> str:
        """
        Return the external id found at extensions[schema_key][property_name].
        Never synthesizes an id: a missing schema or property fails closed.
        """
        if not extensions or self.schema_key not in extensions:
            raise MissingIdentifier(
                f"user missing the expected custom extension: {self.schema_key}"
            )

        custom = extensions[self.schema_key]
        value = custom.get(self.property_name) if isinstance(custom, Mapping) else None

        # Scalars are taken as their text form, like a JSON node's text value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)

        if not isinstance(value, str) or not value:
            raise MissingIdentifier(
                f"custom extension {self.schema_key} has no '{self.property_name}' value"
            )

        return value


def resolver_from_settings(settings) -> IdentityResolver:
    return IdentityResolver(settings.custom_schema_urn, settings.unique_id_property)
