import os

# Must be set before scim_connector.infra.postgres builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from scim_connector.core.config import ConnectorSettings, build_custom_urn
from scim_connector.core.crypto import CredentialVault
from scim_connector.infra.postgres import build_engine, get_db, init_db
from scim_connector.main import create_app

CUSTOM_URN = build_custom_urn("opp", "custom")


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="session")
def shared_key_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("keys")


@pytest.fixture
def vault(shared_key_dir):
    vault = CredentialVault(shared_key_dir)
    vault.ensure_keypair()
    return vault


@pytest.fixture
def settings(shared_key_dir):
    return ConnectorSettings(
        custom_schema_urn=CUSTOM_URN,
        key_dir=shared_key_dir,
        auto_create_tables=False,
    )


@pytest.fixture
def client(settings, vault, session_factory):
    app = create_app(settings=settings, vault=vault)

    def _test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _test_db
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def scim_user(unique_id="u-42", user_name="jdoe@example.com", active=False, password=None, **extra):
    body = {
        "schemas": ["urn:ietf:params:scim:schemas:core:2.0:User", CUSTOM_URN],
        "userName": user_name,
        "name": {"givenName": "Jane", "familyName": "Doe"},
        "active": active,
    }
    if unique_id is not None:
        body[CUSTOM_URN] = {"uniqueid": unique_id}
    if password is not None:
        body["password"] = password
    body.update(extra)
    return body
