"""
X.509 certificate path verification.

This module decides whether a presented certificate chains to a trusted
anchor, using only the certificates the caller supplies: the peer's
intermediates and the local trust anchors. Missing issuers are never fetched.
"""

from .certificate import (
    Certificate,
    KeyUsageFlag,
    certificates_from_x5c,
    load_pem_certificates,
)
from .config import (
    ENV_VAR_CA_CERTS,
    TrustStoreConfig,
    create_verifier,
    load_trust_anchors,
    read_trust_store,
)
from .errors import (
    CertificateParseError,
    CertPathError,
    OracleUnavailableError,
    TrustStoreError,
    VerificationError,
)
from .path_builder import PathBuilder
from .pool import CertificatePool
from .result import (
    Chain,
    FailureReason,
    VerificationFailure,
    VerificationResult,
)
from .validator import ChainCheck, ChainValidator, verify_signature
from .verifier import Verifier, verify

__all__ = [
    # Model
    "Certificate",
    "KeyUsageFlag",
    "load_pem_certificates",
    "certificates_from_x5c",
    # Pool
    "CertificatePool",
    # Path building and validation
    "PathBuilder",
    "ChainValidator",
    "ChainCheck",
    "verify_signature",
    # Results
    "Chain",
    "FailureReason",
    "VerificationFailure",
    "VerificationResult",
    # Verifier
    "Verifier",
    "verify",
    # Configuration
    "ENV_VAR_CA_CERTS",
    "TrustStoreConfig",
    "read_trust_store",
    "load_trust_anchors",
    "create_verifier",
    # Errors
    "CertPathError",
    "CertificateParseError",
    "TrustStoreError",
    "VerificationError",
    "OracleUnavailableError",
]
