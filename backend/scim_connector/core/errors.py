# scim_connector/core/errors.py

class ConnectorError(Exception):
    """Base failure with a stable machine-readable code."""

    code = "CONNECTOR_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(f"{self.code}: {message}")


class MissingIdentifier(ConnectorError):
    code = "MISSING_CUSTOM_PROPERTIES"


class ValidationError(ConnectorError):
    code = "INVALID_REQUEST"


class StorageError(ConnectorError):
    code = "STORAGE_FAILED"


class UnexpectedRowCount(StorageError):
    code = "UNEXPECTED_ROW_COUNT"

    def __init__(self, operation: str, affected_rows: int, code: str | None = None):
        self.affected_rows = affected_rows
        super().__init__(
            f"{operation} failed, expected 1 row affected but {affected_rows} rows affected.",
            code=code,
        )


class EncryptionError(ConnectorError):
    code = "ENCRYPTION_FAILED"


class NotFound(ConnectorError):
    code = "USER_NOT_FOUND"

    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(f"User '{external_id}' not found")
