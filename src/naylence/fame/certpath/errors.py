"""
Error types for the certificate path engine.

Verification outcomes are returned as values; these exceptions cover the
surrounding concerns (parsing, trust store loading, the comparison oracle)
and explicit unwrapping of a failed result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .result import VerificationFailure


class CertPathError(Exception):
    """
    Base error class for all certificate path errors.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CertificateParseError(CertPathError):
    """
    Error raised when certificate bytes cannot be decoded.
    """

    def __init__(self, message: str, index: Optional[int] = None):
        if index is not None:
            message = f"Certificate {index}: {message}"
        super().__init__(message)
        self.index = index


class TrustStoreError(CertPathError):
    """
    Error raised when a trust store cannot be read or holds no certificates.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class VerificationError(CertPathError):
    """
    Error raised when a failed verification result is unwrapped.
    """

    def __init__(self, failure: VerificationFailure):
        super().__init__(f"{failure.reason.value}: {failure.message}")
        self.failure = failure

    @property
    def reason(self):
        return self.failure.reason


class OracleUnavailableError(CertPathError):
    """
    Error raised when the external comparison tool cannot be run.
    """

    pass
