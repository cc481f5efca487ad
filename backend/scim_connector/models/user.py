# scim_connector/models/user.py

from sqlalchemy import Boolean, Column, DateTime, LargeBinary, String, false
from sqlalchemy.sql import func

from scim_connector.models.base import Base


class ProvisionedUser(Base):
    __tablename__ = "provisioned_users"

    # Caller's immutable id from the custom extension, never changes
    external_id = Column(String(100), primary_key=True)
    first_name = Column(String(20), nullable=False)
    last_name = Column(String(20), nullable=False)
    login_name = Column(String(255), nullable=False)

    # RSA-OAEP ciphertext only, plaintext is never stored
    secret = Column(LargeBinary(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    active = Column(Boolean, server_default=false(), default=False, nullable=False)
