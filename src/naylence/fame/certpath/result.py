"""
Verification result types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .certificate import Certificate
from .errors import VerificationError

Chain = Tuple[Certificate, ...]


class FailureReason(str, Enum):
    """Why no trusted chain could be established."""

    NO_PATH_FOUND = "NoPathFound"
    EXPIRED = "Expired"
    NOT_YET_VALID = "NotYetValid"
    INVALID_SIGNATURE = "InvalidSignature"
    NOT_A_CERTIFICATE_AUTHORITY = "NotACertificateAuthority"
    PATH_LENGTH_EXCEEDED = "PathLengthExceeded"
    UNTRUSTED_ANCHOR = "UntrustedAnchor"


@dataclass(frozen=True)
class VerificationFailure:
    """A categorized verification failure."""

    reason: FailureReason
    """Failure category."""

    message: str
    """Human-readable detail."""

    certificate: Optional[Certificate] = None
    """The chain element the failing check was applied to."""

    depth: Optional[int] = None
    """Index of that element in the chain, leaf being 0."""

    chain: Chain = ()
    """The candidate chain that produced this failure, if any."""


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a single verification call: a trusted chain or a failure."""

    chain: Chain = ()
    failure: Optional[VerificationFailure] = None

    def __post_init__(self):
        if bool(self.chain) == (self.failure is not None):
            raise ValueError("VerificationResult needs exactly one of chain or failure")

    @classmethod
    def success(cls, chain: Chain) -> VerificationResult:
        return cls(chain=tuple(chain))

    @classmethod
    def failed(cls, failure: VerificationFailure) -> VerificationResult:
        return cls(failure=failure)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def reason(self) -> Optional[FailureReason]:
        return self.failure.reason if self.failure is not None else None

    @property
    def anchor(self) -> Optional[Certificate]:
        return self.chain[-1] if self.chain else None

    def unwrap(self) -> Chain:
        """
        Return the trusted chain.

        Raises:
            VerificationError: the verification failed
        """
        if self.failure is not None:
            raise VerificationError(self.failure)
        return self.chain
