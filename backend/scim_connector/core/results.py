# scim_connector/core/results.py

from dataclasses import dataclass


@dataclass(frozen=True)
class Unsupported:
    """Returned instead of a result for capabilities this connector does not implement."""

    operation: str
    code: str = "UNSUPPORTED_OPERATION"

    @property
    def message(self) -> str:
        return f"{self.operation} is not supported by this connector"
