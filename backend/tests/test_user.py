import time
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.expression import Insert, Update

from scim_connector.core.errors import (
    EncryptionError,
    NotFound,
    StorageError,
    UnexpectedRowCount,
    ValidationError,
)
from scim_connector.core.user import (
    UserRecord,
    create_user,
    find_users,
    get_user,
    update_user,
    upsert_user,
)
from scim_connector.models.user import ProvisionedUser


def _record(**overrides):
    values = dict(first_name="Jane", last_name="Doe", login_name="jdoe@example.com", active=False)
    values.update(overrides)
    return UserRecord(**values)


def _rows(db):
    return db.execute(select(ProvisionedUser).execution_options(populate_existing=True)).scalars().all()


def test_create_inserts_row_without_secret(db, vault):
    stored = upsert_user(db, vault, "u-42", _record(active=True, secret="hunter2"))

    assert stored.external_id == "u-42"
    [row] = _rows(db)
    assert row.external_id == "u-42"
    assert row.secret is None
    assert row.active is True
    assert row.created_at is not None


def test_create_defaults_to_inactive(db, vault):
    create_user(db, vault, "u-42", UserRecord(first_name="Jane", last_name="Doe", login_name="jdoe"))

    assert get_user(db, vault, "u-42").active is False


def test_repeated_upserts_keep_one_row(db, vault):
    upsert_user(db, vault, "u-42", _record())
    upsert_user(db, vault, "u-42", _record(active=True, first_name="Janet"))
    upsert_user(db, vault, "u-42", _record(active=True, login_name="janet@example.com"))

    [row] = _rows(db)
    assert row.first_name == "Jane"
    assert row.login_name == "janet@example.com"
    assert row.active is True


def test_active_with_secret_stores_ciphertext(db, vault):
    upsert_user(db, vault, "u-42", _record())
    upsert_user(db, vault, "u-42", _record(active=True, secret="hunter2"))

    [row] = _rows(db)
    assert row.secret is not None
    assert b"hunter2" not in row.secret
    assert vault.decrypt(row.secret) == "hunter2"


def test_active_without_secret_leaves_secret_untouched(db, vault):
    upsert_user(db, vault, "u-42", _record())
    upsert_user(db, vault, "u-42", _record(active=True, secret="hunter2"))
    upsert_user(db, vault, "u-42", _record(active=True, last_name="Smith"))

    user = get_user(db, vault, "u-42")
    assert user.last_name == "Smith"
    assert user.secret == "hunter2"


def test_deactivate_only_changes_active_flag(db, vault):
    upsert_user(db, vault, "u-42", _record(active=True))
    upsert_user(db, vault, "u-42", _record(active=True, secret="hunter2"))

    upsert_user(db, vault, "u-42", _record(active=False, first_name="X", last_name="Y", login_name="z"))

    user = get_user(db, vault, "u-42")
    assert user.active is False
    assert (user.first_name, user.last_name, user.login_name) == ("Jane", "Doe", "jdoe@example.com")
    assert user.secret == "hunter2"


def test_secret_on_inactive_user_rejected(db, vault):
    upsert_user(db, vault, "u-42", _record(active=True))

    with pytest.raises(ValidationError) as exc:
        upsert_user(db, vault, "u-42", _record(active=False, secret="hunter2", first_name="X"))
    assert exc.value.code == "SECRET_ON_INACTIVE_USER"

    [row] = _rows(db)
    assert row.active is True
    assert row.first_name == "Jane"
    assert row.secret is None


def test_reactivation_keeps_previous_secret(db, vault):
    upsert_user(db, vault, "u-42", _record())
    upsert_user(db, vault, "u-42", _record(active=True, secret="hunter2"))
    upsert_user(db, vault, "u-42", _record(active=False))
    upsert_user(db, vault, "u-42", _record(active=True))

    assert get_user(db, vault, "u-42").secret == "hunter2"


def test_update_rejects_id_change(db, vault):
    upsert_user(db, vault, "u-1", _record())

    with pytest.raises(ValidationError) as exc:
        update_user(db, vault, "u-1", "u-2", _record(active=True))
    assert exc.value.code == "UPDATE_USER_ID_MISMATCH"

    with pytest.raises(ValidationError):
        update_user(db, vault, "u-2", "u-2", _record(external_id="u-1"))

    assert [row.external_id for row in _rows(db)] == ["u-1"]


def test_update_id_match_ignores_case(db, vault):
    upsert_user(db, vault, "u-42", _record())

    stored = update_user(db, vault, "U-42", "u-42", _record(active=True, external_id="U-42"))

    assert stored.external_id == "u-42"
    assert get_user(db, vault, "u-42").active is True


def test_vanished_row_rolls_back(db, vault):
    # Row disappears between the existence check and the write
    with patch("scim_connector.core.user.user_exists", return_value=True):
        with pytest.raises(UnexpectedRowCount) as exc:
            upsert_user(db, vault, "u-42", _record(active=True))

    assert exc.value.affected_rows == 0
    assert exc.value.code == "UPDATE_USER_FAILED"
    assert _rows(db) == []


def test_duplicate_insert_becomes_storage_error(db, vault):
    upsert_user(db, vault, "u-42", _record(active=True))

    with patch("scim_connector.core.user.user_exists", return_value=False):
        with pytest.raises(StorageError) as exc:
            upsert_user(db, vault, "u-42", _record(active=False, first_name="Other"))

    assert exc.value.code == "USER_CONSTRAINT_VIOLATION"
    [row] = _rows(db)
    assert row.first_name == "Jane"
    assert row.active is True


def test_missing_required_column_becomes_storage_error(db, vault):
    with pytest.raises(StorageError):
        upsert_user(db, vault, "u-42", UserRecord(login_name="jdoe"))

    assert _rows(db) == []


def test_encryption_failure_rolls_back(db, vault, tmp_path):
    from scim_connector.core.crypto import CredentialVault

    upsert_user(db, vault, "u-42", _record())
    unloaded = CredentialVault(tmp_path / "empty")

    with pytest.raises(EncryptionError):
        upsert_user(db, unloaded, "u-42", _record(active=True, secret="hunter2", first_name="X"))

    user = get_user(db, vault, "u-42")
    assert user.first_name == "Jane"
    assert user.secret is None


def test_get_missing_user(db, vault):
    with pytest.raises(NotFound) as exc:
        get_user(db, vault, "nobody")
    assert exc.value.code == "USER_NOT_FOUND"


def test_find_users(db, vault):
    upsert_user(db, vault, "u-1", _record(login_name="a@example.com"))
    upsert_user(db, vault, "u-2", _record(login_name="b@example.com"))
    upsert_user(db, vault, "u-2", _record(active=True, login_name="b@example.com", secret="s"))

    [user] = find_users(db, login_name="b@example.com")
    assert user.external_id == "u-2"
    assert user.secret is None

    assert [u.login_name for u in find_users(db, external_id="u-1")] == ["a@example.com"]
    assert find_users(db, login_name="nobody") == []


def test_create_then_activate_with_secret(db, vault):
    upsert_user(db, vault, "u-42", _record(active=False))
    [row] = _rows(db)
    assert row.secret is None and row.active is False

    upsert_user(db, vault, "u-42", _record(active=True, secret="hunter2"))
    [row] = _rows(db)
    assert vault.decrypt(row.secret) == "hunter2"

    user = get_user(db, vault, "u-42")
    assert user.active is True
    assert user.secret == "hunter2"


def test_upsert_rejects_record_claiming_other_id(db, vault):
    upsert_user(db, vault, "u-42", _record())

    with pytest.raises(ValidationError) as exc:
        upsert_user(db, vault, "u-42", _record(active=True, first_name="X", external_id="u-99"))
    assert exc.value.code == "UPDATE_USER_ID_MISMATCH"

    with pytest.raises(ValidationError):
        create_user(db, vault, "u-7", _record(external_id="u-8"))

    [row] = _rows(db)
    assert row.external_id == "u-42"
    assert row.first_name == "Jane"
    assert row.active is False


def test_timestamps_on_update(db, vault):
    upsert_user(db, vault, "u-42", _record())
    [row] = _rows(db)
    created_at, updated_at = row.created_at, row.updated_at

    # SQLite CURRENT_TIMESTAMP has one-second resolution
    time.sleep(1.1)
    upsert_user(db, vault, "u-42", _record(active=True))

    [row] = _rows(db)
    assert row.created_at == created_at
    assert row.updated_at > updated_at


def test_multiple_rows_affected_rolls_back(db, vault):
    upsert_user(db, vault, "u-42", _record())
    execute = db.execute

    def report_two_rows(stmt, *args, **kwargs):
        result = execute(stmt, *args, **kwargs)
        if isinstance(stmt, Update):
            return MagicMock(rowcount=2)
        return result

    with patch.object(db, "execute", side_effect=report_two_rows):
        with pytest.raises(UnexpectedRowCount) as exc:
            upsert_user(db, vault, "u-42", _record(active=True, first_name="Janet"))

    assert exc.value.affected_rows == 2
    assert exc.value.code == "UPDATE_USER_FAILED"
    [row] = _rows(db)
    assert row.first_name == "Jane"
    assert row.active is False


def test_insert_affecting_no_rows_reports_create_failure(db, vault):
    execute = db.execute

    def report_no_rows(stmt, *args, **kwargs):
        if isinstance(stmt, Insert):
            return MagicMock(rowcount=0)
        return execute(stmt, *args, **kwargs)

    with patch.object(db, "execute", side_effect=report_no_rows):
        with pytest.raises(UnexpectedRowCount) as exc:
            create_user(db, vault, "u-42", _record())

    assert exc.value.code == "CREATE_USER_FAILED"
    assert _rows(db) == []


def test_read_failure_reports_get_failure(db, vault):
    upsert_user(db, vault, "u-42", _record())

    with patch.object(db, "execute", side_effect=OperationalError("SELECT", {}, Exception("connection lost"))):
        with pytest.raises(StorageError) as exc:
            get_user(db, vault, "u-42")

    assert exc.value.code == "GET_USER_FAILED"
