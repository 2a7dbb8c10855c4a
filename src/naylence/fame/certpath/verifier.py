"""
Certificate chain verification entry point.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from naylence.fame.util.logging import getLogger

from .certificate import Certificate, now_utc
from .path_builder import PathBuilder
from .pool import CertificatePool
from .result import VerificationResult
from .validator import ChainValidator

logger = getLogger(__name__)

AnchorSource = Union[CertificatePool, Iterable[Certificate]]


def _as_pool(certificates: AnchorSource) -> CertificatePool:
    if isinstance(certificates, CertificatePool):
        return certificates
    return CertificatePool(certificates)


def _normalize_time(verification_time: Optional[datetime]) -> datetime:
    if verification_time is None:
        return now_utc()
    if verification_time.tzinfo is None:
        return verification_time.replace(tzinfo=timezone.utc)
    return verification_time


class Verifier:
    """
    Verifies presented certificates against a fixed set of trust anchors.

    The anchor pool is read-only for the lifetime of the verifier, so one
    instance can serve concurrent calls. Peer-supplied intermediates are
    pooled per call and never outlive it.
    """

    def __init__(self, anchors: AnchorSource, max_depth: Optional[int] = None):
        self._anchors = _as_pool(anchors)
        self._max_depth = max_depth

    @property
    def anchors(self) -> CertificatePool:
        return self._anchors

    def verify(
        self,
        leaf: Certificate,
        intermediates: Iterable[Certificate] = (),
        verification_time: Optional[datetime] = None,
    ) -> VerificationResult:
        """
        Decide whether ``leaf`` chains to one of the trust anchors.

        Args:
            leaf: The presented certificate
            intermediates: Certificates supplied alongside it by the peer
            verification_time: Instant for validity checks; defaults to now.
                Pin it for reproducible results.

        Returns:
            A result holding the first chain that validated (leaf first), or
            the most informative failure
        """
        at = _normalize_time(verification_time)
        intermediate_pool = CertificatePool(intermediates)

        logger.debug(
            "certificate_chain_verification_started",
            leaf=leaf.describe(),
            intermediates=len(intermediate_pool),
            anchors=len(self._anchors),
            verification_time=at.isoformat(),
        )

        builder = PathBuilder(intermediate_pool, self._anchors, max_depth=self._max_depth)
        validator = ChainValidator(self._anchors, at)
        result = validator.select(builder.build(leaf))

        if result.ok:
            logger.debug(
                "certificate_chain_verification_succeeded",
                leaf=leaf.describe(),
                chain_length=len(result.chain),
                anchor=result.chain[-1].describe(),
            )
        else:
            assert result.failure is not None
            logger.debug(
                "certificate_chain_verification_failed",
                leaf=leaf.describe(),
                reason=result.failure.reason.value,
                error=result.failure.message,
            )
        return result


def verify(
    leaf: Certificate,
    intermediates: Iterable[Certificate],
    anchors: AnchorSource,
    verification_time: Optional[datetime] = None,
) -> VerificationResult:
    """Verify ``leaf`` against ``anchors`` using only the supplied intermediates."""
    return Verifier(anchors).verify(leaf, intermediates, verification_time)
