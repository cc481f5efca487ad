# scim_connector/core/groups.py
#
# Groups live in the identity provider only. Every call answers Unsupported
# so the caller can tell "not implemented" apart from "nothing to do".

from scim_connector.core.results import Unsupported


def list_groups(start_index: int = 1, count: int | None = None) -> Unsupported:
    return Unsupported("getGroups")


def get_group(group_id: str) -> Unsupported:
    return Unsupported("getGroup")


def create_group(group: dict) -> Unsupported:
    return Unsupported("createGroup")


def update_group(group_id: str, group: dict) -> Unsupported:
    return Unsupported("updateGroup")


def delete_group(group_id: str) -> Unsupported:
    return Unsupported("deleteGroup")
