"""
Parsed X.509 certificate model.

A ``Certificate`` carries the subset of a certificate that trust decisions
depend on. Values are immutable once parsed and compare equal by their DER
encoding.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .errors import CertificateParseError


class KeyUsageFlag(str, Enum):
    """Key usage bits as named in RFC 5280."""

    DIGITAL_SIGNATURE = "digitalSignature"
    CONTENT_COMMITMENT = "contentCommitment"
    KEY_ENCIPHERMENT = "keyEncipherment"
    DATA_ENCIPHERMENT = "dataEncipherment"
    KEY_AGREEMENT = "keyAgreement"
    KEY_CERT_SIGN = "keyCertSign"
    CRL_SIGN = "cRLSign"
    ENCIPHER_ONLY = "encipherOnly"
    DECIPHER_ONLY = "decipherOnly"


_KEY_USAGE_ATTRIBUTES = {
    KeyUsageFlag.DIGITAL_SIGNATURE: "digital_signature",
    KeyUsageFlag.CONTENT_COMMITMENT: "content_commitment",
    KeyUsageFlag.KEY_ENCIPHERMENT: "key_encipherment",
    KeyUsageFlag.DATA_ENCIPHERMENT: "data_encipherment",
    KeyUsageFlag.KEY_AGREEMENT: "key_agreement",
    KeyUsageFlag.KEY_CERT_SIGN: "key_cert_sign",
    KeyUsageFlag.CRL_SIGN: "crl_sign",
}


def _key_usage_flags(key_usage: x509.KeyUsage) -> frozenset[KeyUsageFlag]:
    flags = {flag for flag, attr in _KEY_USAGE_ATTRIBUTES.items() if getattr(key_usage, attr)}
    # encipher_only / decipher_only raise unless key_agreement is asserted
    if key_usage.key_agreement:
        if key_usage.encipher_only:
            flags.add(KeyUsageFlag.ENCIPHER_ONLY)
        if key_usage.decipher_only:
            flags.add(KeyUsageFlag.DECIPHER_ONLY)
    return frozenset(flags)


def _extension_value(cert: x509.Certificate, ext_type: type) -> Optional[Any]:
    try:
        return cert.extensions.get_extension_for_class(ext_type).value
    except x509.ExtensionNotFound:
        return None


@dataclass(frozen=True, eq=False)
class Certificate:
    """
    Immutable view of one X.509 certificate.

    Only the fields used by path building and chain validation are lifted out
    of the parsed certificate; the original ``cryptography`` object is kept
    for signature verification.
    """

    subject: x509.Name
    issuer: x509.Name
    serial_number: int
    not_before: datetime
    not_after: datetime
    public_key: Any = field(repr=False)
    public_key_bytes: bytes = field(repr=False)
    signature_algorithm_oid: Optional[x509.ObjectIdentifier] = field(repr=False)
    signature: bytes = field(repr=False)
    is_ca: bool = False
    path_len_constraint: Optional[int] = None
    key_usage: Optional[frozenset[KeyUsageFlag]] = None
    subject_key_identifier: Optional[bytes] = field(default=None, repr=False)
    authority_key_identifier: Optional[bytes] = field(default=None, repr=False)
    raw_bytes: bytes = field(default=b"", repr=False)
    _x509: Optional[x509.Certificate] = field(default=None, repr=False)

    # ── Construction ─────────────────────────────────────────────────────────

    @classmethod
    def from_x509(cls, cert: x509.Certificate) -> Certificate:
        """Build a Certificate from a parsed ``cryptography`` certificate."""
        try:
            basic_constraints = _extension_value(cert, x509.BasicConstraints)
            key_usage = _extension_value(cert, x509.KeyUsage)
            ski = _extension_value(cert, x509.SubjectKeyIdentifier)
            aki = _extension_value(cert, x509.AuthorityKeyIdentifier)
            public_key = cert.public_key()
        except (ValueError, x509.DuplicateExtension, UnsupportedAlgorithm) as e:
            raise CertificateParseError(f"Invalid certificate extensions: {e}") from e

        is_ca = bool(basic_constraints and basic_constraints.ca)
        try:
            signature_algorithm_oid = cert.signature_algorithm_oid
        except ValueError:
            signature_algorithm_oid = None

        return cls(
            subject=cert.subject,
            issuer=cert.issuer,
            serial_number=cert.serial_number,
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
            public_key=public_key,
            public_key_bytes=public_key.public_bytes(
                serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
            ),
            signature_algorithm_oid=signature_algorithm_oid,
            signature=cert.signature,
            is_ca=is_ca,
            path_len_constraint=basic_constraints.path_length if is_ca else None,
            key_usage=_key_usage_flags(key_usage) if key_usage is not None else None,
            subject_key_identifier=ski.digest if ski is not None else None,
            authority_key_identifier=aki.key_identifier if aki is not None else None,
            raw_bytes=cert.public_bytes(serialization.Encoding.DER),
            _x509=cert,
        )

    @classmethod
    def from_der(cls, data: bytes) -> Certificate:
        try:
            cert = x509.load_der_x509_certificate(data)
        except ValueError as e:
            raise CertificateParseError(f"Failed to decode DER certificate: {e}") from e
        return cls.from_x509(cert)

    @classmethod
    def from_pem(cls, data: Union[str, bytes]) -> Certificate:
        """Parse exactly one PEM certificate; use load_pem_certificates for bundles."""
        certificates = load_pem_certificates(data)
        if len(certificates) != 1:
            raise CertificateParseError(f"Expected one PEM certificate, found {len(certificates)}")
        return certificates[0]

    # ── Identity ─────────────────────────────────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Certificate):
            return NotImplemented
        return self.raw_bytes == other.raw_bytes

    def __hash__(self) -> int:
        return hash(self.raw_bytes)

    @property
    def fingerprint(self) -> str:
        """SHA-256 fingerprint of the DER encoding, hex encoded."""
        return hashlib.sha256(self.raw_bytes).hexdigest()

    @property
    def is_self_issued(self) -> bool:
        return self.subject == self.issuer

    def same_identity(self, other: Certificate) -> bool:
        """True for the same certificate, or a re-issue with identical subject and key."""
        if self.raw_bytes == other.raw_bytes:
            return True
        return self.subject == other.subject and self.public_key_bytes == other.public_key_bytes

    # ── Constraints ──────────────────────────────────────────────────────────

    def allows(self, flag: KeyUsageFlag) -> bool:
        """
        Check a key usage bit.

        A certificate without a keyUsage extension is unrestricted (RFC 5280
        section 4.2.1.3).
        """
        if self.key_usage is None:
            return True
        return flag in self.key_usage

    def valid_at(self, instant: datetime) -> bool:
        return self.not_before <= instant <= self.not_after

    def to_x509(self) -> x509.Certificate:
        if self._x509 is None:
            return x509.load_der_x509_certificate(self.raw_bytes)
        return self._x509

    def describe(self) -> str:
        """Short human-readable label used in messages and logs."""
        return self.subject.rfc4514_string() or f"serial={self.serial_number:x}"


def load_pem_certificates(bundle: Union[str, bytes]) -> List[Certificate]:
    """
    Parse a bundle of concatenated PEM certificates.

    Raises:
        CertificateParseError: the bundle holds no certificate or a block is malformed
    """
    if isinstance(bundle, str):
        bundle = bundle.encode()
    if b"-----BEGIN CERTIFICATE-----" not in bundle:
        raise CertificateParseError("No PEM certificates found")
    try:
        parsed = x509.load_pem_x509_certificates(bundle)
    except ValueError as e:
        raise CertificateParseError(f"Failed to decode PEM certificate bundle: {e}") from e
    return [Certificate.from_x509(cert) for cert in parsed]


def certificates_from_x5c(x5c: Iterable[str]) -> List[Certificate]:
    """
    Decode a JWK ``x5c`` list (base64 DER, leaf first).

    Raises:
        CertificateParseError: the list is empty or an entry cannot be decoded
    """
    certificates = []
    for i, cert_b64 in enumerate(x5c):
        try:
            der = base64.b64decode(cert_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CertificateParseError(f"Failed to decode certificate: {e}", index=i) from e
        try:
            certificates.append(Certificate.from_der(der))
        except CertificateParseError as e:
            raise CertificateParseError(e.message, index=i) from e
    if not certificates:
        raise CertificateParseError("Empty certificate chain")
    return certificates


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
