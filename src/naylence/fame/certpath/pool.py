"""
Indexed certificate collections.

A pool is used in one of two roles: the anchor pool (explicitly trusted
certificates that terminate path building) or the intermediate pool
(peer-supplied certificates that are untrusted until chained to an anchor).
The roles are kept in separate pool instances.

Pools are not synchronised internally. They may be shared between concurrent
verifications as long as nobody mutates them meanwhile; a host application
that inserts into a pool while verifications are reading it must provide its
own reader/writer exclusion.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Tuple, Union

from cryptography import x509

from naylence.fame.util.logging import getLogger

from .certificate import Certificate, load_pem_certificates

logger = getLogger(__name__)


class CertificatePool:
    """Certificates indexed by subject name and subject key identifier."""

    def __init__(self, certificates: Iterable[Certificate] = ()):
        self._certificates: Dict[bytes, Certificate] = {}
        self._by_subject: Dict[x509.Name, List[Certificate]] = {}
        self._by_identity: Dict[Tuple[x509.Name, bytes], Certificate] = {}
        for certificate in certificates:
            self.insert(certificate)

    @classmethod
    def from_pem(cls, bundle: Union[str, bytes]) -> CertificatePool:
        return cls(load_pem_certificates(bundle))

    def insert(self, certificate: Certificate) -> bool:
        """
        Add a certificate to the pool.

        Returns:
            False if a certificate with identical DER bytes was already present
        """
        if certificate.raw_bytes in self._certificates:
            return False

        self._certificates[certificate.raw_bytes] = certificate
        self._by_subject.setdefault(certificate.subject, []).append(certificate)
        self._by_identity.setdefault((certificate.subject, certificate.public_key_bytes), certificate)
        logger.debug(
            "certificate_pool_insert",
            subject=certificate.describe(),
            fingerprint=certificate.fingerprint[:16],
            pool_size=len(self._certificates),
        )
        return True

    def issuers_of(self, certificate: Certificate) -> List[Certificate]:
        """
        Return every member whose subject matches the certificate's issuer name.

        Members whose subject key identifier equals the certificate's authority
        key identifier are ranked first; otherwise insertion order is kept.
        Matching is structural only, signatures are not checked here.
        """
        candidates = self._by_subject.get(certificate.issuer, [])
        aki = certificate.authority_key_identifier
        if aki is None or len(candidates) < 2:
            return list(candidates)

        preferred = [c for c in candidates if c.subject_key_identifier == aki]
        others = [c for c in candidates if c.subject_key_identifier != aki]
        return preferred + others

    def contains(self, certificate: Certificate) -> bool:
        """Match by DER bytes, or by subject plus public key."""
        if certificate.raw_bytes in self._certificates:
            return True
        return (certificate.subject, certificate.public_key_bytes) in self._by_identity

    def __contains__(self, certificate: object) -> bool:
        return isinstance(certificate, Certificate) and self.contains(certificate)

    def certificates(self) -> List[Certificate]:
        return list(self._certificates.values())

    def __iter__(self) -> Iterator[Certificate]:
        return iter(list(self._certificates.values()))

    def __len__(self) -> int:
        return len(self._certificates)

    def __repr__(self) -> str:
        return f"CertificatePool(size={len(self)})"
