"""Error taxonomy shared by the rates and risk layers.

``ValidationError`` is user-facing and field-specific.  ``RateFetchError``
never leaves the rate cache.  ``ConfigurationError`` is raised at startup
or by features that cannot run without a credential.
"""

from typing import Optional


class ForexRiskError(Exception):
    """Base class for all application errors."""


class ValidationError(ForexRiskError, ValueError):
    """Bad user input.

    Args:
        errors: Mapping of field name → human-readable message, in the
                order the fields were checked.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__(
            "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        )

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls({field: message})

    @property
    def fields(self) -> list[str]:
        return list(self.errors)

    def to_list(self) -> list[dict]:
        """Render as ``[{"field": ..., "message": ...}]`` for API responses."""
        return [{"field": f, "message": m} for f, m in self.errors.items()]


class RateFetchError(ForexRiskError):
    """The exchange-rate provider could not deliver a usable rate table."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(ForexRiskError):
    """Missing or malformed configuration (e.g. no provider API key)."""
