"""
Per-chain constraint checking.

A candidate chain is checked pairwise from the leaf toward the anchor
(child = element i, issuer = element i + 1):

1. every element must be within its validity window at the verification time
2. the issuer's key must verify the child's signature
3. the issuer must be a CA whose key usage allows certificate signing
4. the issuer's path length constraint must admit the CAs below it
5. the last element must be in the anchor pool

The anchor is never checked as a child: it is trusted as-is, but it still has
to satisfy checks 3 and 4 as the issuer of the element below it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from naylence.fame.util.logging import getLogger

from .certificate import Certificate, KeyUsageFlag
from .pool import CertificatePool
from .result import Chain, FailureReason, VerificationFailure, VerificationResult

logger = getLogger(__name__)


@dataclass(frozen=True)
class ChainCheck:
    """Outcome of checking one candidate chain."""

    chain: Chain
    progress: int
    """Number of chain elements that passed every check applied to them."""

    failure: Optional[VerificationFailure] = None

    @property
    def passed(self) -> bool:
        return self.failure is None


def verify_signature(child: Certificate, issuer: Certificate) -> bool:
    """Check that ``issuer``'s public key verifies ``child``'s signature."""
    try:
        child.to_x509().verify_directly_issued_by(issuer.to_x509())
    except (InvalidSignature, UnsupportedAlgorithm, ValueError, TypeError) as e:
        logger.debug(
            "signature_verification_failed",
            child=child.describe(),
            issuer=issuer.describe(),
            error=str(e) or type(e).__name__,
        )
        return False
    return True


class ChainValidator:
    """Checks candidate chains against one verification instant and anchor pool."""

    def __init__(self, anchors: CertificatePool, verification_time: datetime):
        self._anchors = anchors
        self._verification_time = verification_time

    @property
    def verification_time(self) -> datetime:
        return self._verification_time

    def check(self, chain: Chain) -> ChainCheck:
        chain = tuple(chain)
        if not chain:
            raise ValueError("Cannot check an empty chain")

        for i, cert in enumerate(chain):
            failure = self._check_validity(cert, i, chain)
            if failure is None and i + 1 < len(chain):
                failure = self._check_issuer(cert, chain[i + 1], i, chain)
            if failure is not None:
                return ChainCheck(chain=chain, progress=i, failure=failure)

        anchor = chain[-1]
        if not self._anchors.contains(anchor):
            failure = VerificationFailure(
                reason=FailureReason.UNTRUSTED_ANCHOR,
                message=f"Chain terminates at {anchor.describe()}, which is not a trust anchor",
                certificate=anchor,
                depth=len(chain) - 1,
                chain=chain,
            )
            return ChainCheck(chain=chain, progress=len(chain) - 1, failure=failure)

        return ChainCheck(chain=chain, progress=len(chain))

    def _check_validity(self, cert: Certificate, depth: int, chain: Chain) -> Optional[VerificationFailure]:
        now = self._verification_time
        if now < cert.not_before:
            return VerificationFailure(
                reason=FailureReason.NOT_YET_VALID,
                message=f"{cert.describe()} is not valid before {cert.not_before.isoformat()}",
                certificate=cert,
                depth=depth,
                chain=chain,
            )
        if now > cert.not_after:
            return VerificationFailure(
                reason=FailureReason.EXPIRED,
                message=f"{cert.describe()} expired at {cert.not_after.isoformat()}",
                certificate=cert,
                depth=depth,
                chain=chain,
            )
        return None

    def _check_issuer(
        self, child: Certificate, issuer: Certificate, depth: int, chain: Chain
    ) -> Optional[VerificationFailure]:
        if not verify_signature(child, issuer):
            return VerificationFailure(
                reason=FailureReason.INVALID_SIGNATURE,
                message=f"Signature of {child.describe()} does not verify with the key of {issuer.describe()}",
                certificate=child,
                depth=depth,
                chain=chain,
            )

        if not issuer.is_ca or not issuer.allows(KeyUsageFlag.KEY_CERT_SIGN):
            detail = "is not a CA" if not issuer.is_ca else "lacks keyCertSign key usage"
            return VerificationFailure(
                reason=FailureReason.NOT_A_CERTIFICATE_AUTHORITY,
                message=f"Issuer {issuer.describe()} {detail}",
                certificate=issuer,
                depth=depth + 1,
                chain=chain,
            )

        # CAs strictly between this issuer and the leaf
        intermediates_below = depth
        limit = issuer.path_len_constraint
        if limit is not None and intermediates_below > limit:
            return VerificationFailure(
                reason=FailureReason.PATH_LENGTH_EXCEEDED,
                message=(
                    f"Issuer {issuer.describe()} allows {limit} intermediate CA(s) below it, "
                    f"chain has {intermediates_below}"
                ),
                certificate=issuer,
                depth=depth + 1,
                chain=chain,
            )
        return None

    def select(self, candidates: Iterable[Chain]) -> VerificationResult:
        """
        Return the first candidate that passes every check.

        When all candidates fail, the failure of the one that progressed
        furthest is reported; ties go to the earlier candidate.
        """
        best: Optional[ChainCheck] = None
        examined = 0
        for chain in candidates:
            examined += 1
            result = self.check(chain)
            if result.passed:
                logger.debug("candidate_chain_accepted", length=len(result.chain), examined=examined)
                return VerificationResult.success(result.chain)

            assert result.failure is not None
            logger.debug(
                "candidate_chain_rejected",
                reason=result.failure.reason.value,
                depth=result.failure.depth,
                progress=result.progress,
            )
            if best is None or result.progress > best.progress:
                best = result

        if best is None or best.failure is None:
            return VerificationResult.failed(
                VerificationFailure(
                    reason=FailureReason.NO_PATH_FOUND,
                    message="No chain to a trust anchor could be built from the supplied certificates",
                )
            )
        return VerificationResult.failed(best.failure)
