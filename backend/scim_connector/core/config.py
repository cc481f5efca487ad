# scim_connector/core/config.py

import os
from dataclasses import dataclass, field
from pathlib import Path

# =========================
# IDENTITY PROVIDER SCHEMA
# =========================

CUSTOM_URN_PREFIX = "urn:okta:"
CUSTOM_URN_SUFFIX = ":1.0:user:"

DEFAULT_APP_NAME = "opp"
DEFAULT_SCHEMA_NAME = "custom"
DEFAULT_UNIQUE_ID_PROPERTY = "uniqueid"


def build_custom_urn(app_name: str, schema_name: str) -> str:
    """urn:okta:<app>:1.0:user:<schema>"""
    return f"{CUSTOM_URN_PREFIX}{app_name}{CUSTOM_URN_SUFFIX}{schema_name}"


@dataclass(frozen=True)
class ConnectorSettings:
    """Connector settings, built once at startup and passed explicitly."""

    custom_schema_urn: str = build_custom_urn(DEFAULT_APP_NAME, DEFAULT_SCHEMA_NAME)
    unique_id_property: str = DEFAULT_UNIQUE_ID_PROPERTY
    valid_custom_properties: frozenset = field(
        default_factory=lambda: frozenset({DEFAULT_UNIQUE_ID_PROPERTY})
    )
    key_dir: Path = Path("keys")
    auto_create_tables: bool = True


def load_settings() -> ConnectorSettings:
    """Read connector settings from the environment."""
    app_name = os.getenv("SCIM_APP_NAME", DEFAULT_APP_NAME)
    schema_name = os.getenv("SCIM_SCHEMA_NAME", DEFAULT_SCHEMA_NAME)
    unique_id_property = os.getenv("SCIM_UNIQUE_ID_PROPERTY", DEFAULT_UNIQUE_ID_PROPERTY)

    return ConnectorSettings(
        custom_schema_urn=build_custom_urn(app_name, schema_name),
        unique_id_property=unique_id_property,
        valid_custom_properties=frozenset({unique_id_property}),
        key_dir=Path(os.getenv("KEY_DIR", "keys")),
        auto_create_tables=os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true",
    )
