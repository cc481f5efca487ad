# scim_connector/api/groups.py

from fastapi import APIRouter

from scim_connector.api.error_handlers import unsupported_response
from scim_connector.core import groups

router = APIRouter(prefix="/scim/v2")


@router.get("/Groups")
def list_groups(startIndex: int = 1, count: int | None = None):
    return unsupported_response(groups.list_groups(startIndex, count))


@router.get("/Groups/{group_id}")
def get_group(group_id: str):
    return unsupported_response(groups.get_group(group_id))


@router.post("/Groups")
def create_group(payload: dict):
    return unsupported_response(groups.create_group(payload))


@router.put("/Groups/{group_id}")
def update_group(group_id: str, payload: dict):
    return unsupported_response(groups.update_group(group_id, payload))


@router.delete("/Groups/{group_id}")
def delete_group(group_id: str):
    return unsupported_response(groups.delete_group(group_id))
