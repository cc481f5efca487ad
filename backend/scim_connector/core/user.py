# scim_connector/core/user.py
#
# Concurrent upserts of the same external id: the existence check takes a row
# lock (SELECT ... FOR UPDATE) so updates serialize, and two racing INSERTs of a
# new id are settled by the primary key, the loser gets a StorageError.
# Databases without row locks (SQLite) fall back to last-writer-wins.

import logging
from dataclasses import dataclass, replace

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scim_connector.core.crypto import CredentialVault
from scim_connector.core.errors import (
    ConnectorError,
    NotFound,
    StorageError,
    UnexpectedRowCount,
    ValidationError,
)
from scim_connector.models.user import ProvisionedUser

logger = logging.getLogger(__name__)

# Core table so writes come back as a plain CursorResult with rowcount
users_table = ProvisionedUser.__table__


@dataclass(frozen=True)
class UserRecord:
    first_name: str | None = None
    last_name: str | None = None
    login_name: str | None = None
    active: bool = False
    secret: str | None = None
    external_id: str | None = None


# ---------- HELPERS ----------

def _rollback(db: Session, operation: str) -> None:
    try:
        db.rollback()
    except SQLAlchemyError as e:
        logger.error("%s: rollback failed: %s", operation, e, exc_info=True)


def _storage_error(operation: str, error: SQLAlchemyError, code: str) -> StorageError:
    logger.error("%s failed - %s: %s", operation, type(error).__name__, error, exc_info=True)
    if isinstance(error, IntegrityError):
        code = "USER_CONSTRAINT_VIOLATION"
    return StorageError(str(getattr(error, "orig", None) or error), code=code)


def user_exists(db: Session, external_id: str) -> bool:
    """Look up the row, locking it for the rest of the transaction when it exists."""
    stmt = (
        select(ProvisionedUser.external_id)
        .where(ProvisionedUser.external_id == external_id)
        .with_for_update()
    )
    return db.execute(stmt).first() is not None


def _build_write(db: Session, vault: CredentialVault, external_id: str, record: UserRecord):
    """Pick the statement shape from (exists, active, secret present)."""
    if not user_exists(db, external_id):
        # Secrets are never written on creation
        return "CREATE_USER_FAILED", insert(users_table).values(
            external_id=external_id,
            first_name=record.first_name,
            last_name=record.last_name,
            login_name=record.login_name,
            active=record.active,
        )

    target = update(users_table).where(users_table.c.external_id == external_id)

    if record.active and record.secret is not None:
        return "UPDATE_USER_FAILED", target.values(
            first_name=record.first_name,
            last_name=record.last_name,
            login_name=record.login_name,
            secret=vault.encrypt(record.secret),
            active=True,
        )

    if record.active:
        return "UPDATE_USER_FAILED", target.values(
            first_name=record.first_name,
            last_name=record.last_name,
            login_name=record.login_name,
            active=True,
        )

    if record.secret is None:
        return "UPDATE_USER_FAILED", target.values(active=False)

    raise ValidationError(
        "A secret cannot be set on a deactivated user",
        code="SECRET_ON_INACTIVE_USER",
    )


# ---------- UPSERT ----------

def upsert_user(
    db: Session,
    vault: CredentialVault,
    external_id: str,
    record: UserRecord,
) -> UserRecord:
    """
    Insert the user if external_id is unseen, otherwise update it.
    Exactly one row must change; anything else rolls the transaction back.
    A record claiming a different id is rejected before any storage access.
    """
    if record.external_id is not None and record.external_id.casefold() != external_id.casefold():
        raise ValidationError("Modifying the user id is not allowed.", code="UPDATE_USER_ID_MISMATCH")

    code = "UPSERT_USER_FAILED"
    try:
        code, stmt = _build_write(db, vault, external_id, record)
        affected_rows = db.execute(stmt).rowcount
        if affected_rows != 1:
            raise UnexpectedRowCount(f"Writing user {external_id}", affected_rows, code=code)
        db.commit()
    except ConnectorError as e:
        logger.warning("upsert_user(%s) rejected: %s", external_id, e.code)
        _rollback(db, "upsert_user")
        raise
    except SQLAlchemyError as e:
        error = _storage_error("upsert_user", e, code)
        _rollback(db, "upsert_user")
        raise error from e

    logger.info("Upserted user %s (active=%s)", external_id, record.active)
    return replace(record, external_id=external_id)


def create_user(db: Session, vault: CredentialVault, external_id: str, record: UserRecord) -> UserRecord:
    return upsert_user(db, vault, external_id, record)


def update_user(
    db: Session,
    vault: CredentialVault,
    user_id: str,
    external_id: str,
    record: UserRecord,
) -> UserRecord:
    """Upsert under user_id, refusing any request that would change the id."""
    if user_id.casefold() != external_id.casefold():
        raise ValidationError("Modifying the user id is not allowed.", code="UPDATE_USER_ID_MISMATCH")

    return upsert_user(db, vault, external_id, record)


# ---------- READ ----------

def _to_record(row: ProvisionedUser, secret: str | None = None) -> UserRecord:
    return UserRecord(
        first_name=row.first_name,
        last_name=row.last_name,
        login_name=row.login_name,
        active=bool(row.active),
        secret=secret,
        external_id=row.external_id,
    )


def get_user(db: Session, vault: CredentialVault, external_id: str) -> UserRecord:
    """Single-row lookup; the stored secret comes back decrypted."""
    stmt = (
        select(ProvisionedUser)
        .where(ProvisionedUser.external_id == external_id)
        .execution_options(populate_existing=True)
    )
    try:
        row = db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as e:
        raise _storage_error("get_user", e, "GET_USER_FAILED") from e

    if row is None:
        raise NotFound(external_id)

    secret = vault.decrypt(row.secret) if row.secret is not None else None
    return _to_record(row, secret)


def find_users(
    db: Session,
    login_name: str | None = None,
    external_id: str | None = None,
) -> list[UserRecord]:
    """Equality lookup on login name or external id. Secrets are not returned."""
    stmt = (
        select(ProvisionedUser)
        .order_by(ProvisionedUser.external_id)
        .execution_options(populate_existing=True)
    )
    if login_name is not None:
        stmt = stmt.where(ProvisionedUser.login_name == login_name)
    if external_id is not None:
        stmt = stmt.where(ProvisionedUser.external_id == external_id)

    try:
        rows = db.execute(stmt).scalars().all()
    except SQLAlchemyError as e:
        raise _storage_error("find_users", e, "GET_USERS_FAILED") from e

    return [_to_record(row) for row in rows]
