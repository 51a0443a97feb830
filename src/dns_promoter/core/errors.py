"""Error taxonomy for the reconciler.

Configuration problems are fatal, discovery problems abort a cycle, and
everything else is contained at the account boundary.
"""

from typing import Optional


class PromoterError(Exception):
    """Base exception for dns-promoter operations."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class DiscoveryError(PromoterError):
    """Raised when listing organization accounts fails."""
    pass


class CredentialError(PromoterError):
    """Raised when a role cannot be assumed."""
    pass


class ProviderReadError(PromoterError):
    """Raised when a zone or certificate read call fails."""
    pass


class ApplyError(PromoterError):
    """Raised when an upsert against the root zone fails."""
    pass


def error_code(exc: Exception) -> Optional[str]:
    """Extract the AWS error code from a botocore exception, if any."""
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code")
    return None
