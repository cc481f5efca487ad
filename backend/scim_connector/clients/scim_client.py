# scim_connector/clients/scim_client.py
#
# Pushes users to a running connector the way the identity provider does.
# Handy for smoke-testing a deployment.

import logging
import os

import requests

from scim_connector.core.config import build_custom_urn

logger = logging.getLogger(__name__)

# =========================
# CONFIGURATION
# =========================

SERVER_URL = os.getenv("SCIM_SERVER_URL", "http://127.0.0.1:8000")
SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
DEFAULT_TIMEOUT = 10


class ScimClientError(Exception):
    def __init__(self, status_code: int, body: dict):
        self.status_code = status_code
        self.body = body
        self.error_code = body.get("errorCode")
        super().__init__(f"{status_code} {self.error_code}: {body.get('detail')}")


# =========================
# SCIM CLIENT
# =========================

class ScimClient:
    def __init__(
        self,
        base_url: str = SERVER_URL,
        custom_urn: str = build_custom_urn("opp", "custom"),
        unique_id_property: str = "uniqueid",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/") + "/scim/v2"
        self.custom_urn = custom_urn
        self.unique_id_property = unique_id_property
        self.session = session or requests.Session()
        self.timeout = timeout

    def build_user(
        self,
        unique_id: str,
        user_name: str,
        first_name: str,
        last_name: str,
        active: bool = True,
        password: str | None = None,
    ) -> dict:
        """SCIM user body carrying the unique id in the custom extension"""
        body = {
            "schemas": [SCIM_USER_SCHEMA, self.custom_urn],
            "userName": user_name,
            "name": {"givenName": first_name, "familyName": last_name},
            "active": active,
            self.custom_urn: {self.unique_id_property: unique_id},
        }
        if password is not None:
            body["password"] = password
        return body

    def _handle(self, resp: requests.Response) -> dict:
        body = resp.json() if resp.content else {}
        if resp.status_code >= 400:
            logger.error("❌ SCIM call failed: %s %s", resp.status_code, body)
            raise ScimClientError(resp.status_code, body)
        return body

    def create_user(self, user: dict) -> dict:
        resp = self.session.post(f"{self.base_url}/Users", json=user, timeout=self.timeout)
        return self._handle(resp)

    def update_user(self, user_id: str, user: dict) -> dict:
        resp = self.session.put(f"{self.base_url}/Users/{user_id}", json=user, timeout=self.timeout)
        return self._handle(resp)

    def get_user(self, user_id: str) -> dict:
        resp = self.session.get(f"{self.base_url}/Users/{user_id}", timeout=self.timeout)
        return self._handle(resp)

    def find_by_user_name(self, user_name: str) -> list[dict]:
        resp = self.session.get(
            f"{self.base_url}/Users",
            params={"filter": f'userName eq "{user_name}"'},
            timeout=self.timeout,
        )
        return self._handle(resp).get("Resources", [])

    def capabilities(self) -> list[str]:
        resp = self.session.get(f"{self.base_url}/ServiceProviderConfigs", timeout=self.timeout)
        return self._handle(resp).get("umCapabilities", [])


# =========================
# DEMO USAGE
# =========================

if __name__ == "__main__":
    client = ScimClient()
    print(f"Capabilities: {client.capabilities()}")

    client.create_user(client.build_user("u-42", "jdoe@example.com", "Jane", "Doe", active=False))
    client.update_user("u-42", client.build_user("u-42", "jdoe@example.com", "Jane", "Doe", password="hunter2"))
    print(client.get_user("u-42"))
