from __future__ import annotations

from typing import Optional


class ProviderError(RuntimeError):
    pass


class ConfigurationError(ProviderError):
    """Required provider credentials are missing."""


class ExternalApiError(ProviderError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ExternalApiError):
    def __init__(self, message: str = "API rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class ProviderValidationError(ExternalApiError):
    """Provider payload did not match the expected schema."""
