"""
FastAPI router for certificate chain verification.

Exposes the in-process verifier over HTTP so peers and tooling can check a
presented certificate (plus any intermediates it came with) against this
service's trust anchors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from naylence.fame.util.logging import getLogger

from .certificate import Certificate, load_pem_certificates
from .errors import CertificateParseError
from .fastapi_model import ChainElement, ChainVerificationRequest, ChainVerificationResponse
from .verifier import Verifier

if TYPE_CHECKING:
    from fastapi import APIRouter

logger = getLogger(__name__)

DEFAULT_PREFIX = "/fame/v1/certpath"


def _chain_element(cert: Certificate) -> ChainElement:
    return ChainElement(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=f"{cert.serial_number:x}",
        fingerprint=cert.fingerprint,
    )


def create_verification_router(
    *,
    verifier: Verifier,
    prefix: str = DEFAULT_PREFIX,
) -> APIRouter:
    """Create FastAPI router for the chain verification service."""
    from fastapi import APIRouter, HTTPException

    router = APIRouter(prefix=prefix, tags=["Certificate Chain Verification"])

    @router.post("/verify", response_model=ChainVerificationResponse, response_model_by_alias=True)
    async def verify_chain(request: ChainVerificationRequest):
        """
        Verify a presented certificate against the configured trust anchors.

        Only the intermediates sent with the request are used to bridge the
        certificate to an anchor. A rejected chain is a normal 200 response
        with ``trusted`` set to false; undecodable PEM input is a 400.
        """
        try:
            leaf = Certificate.from_pem(request.certificate_pem)
            intermediates = (
                load_pem_certificates(request.intermediates_pem) if request.intermediates_pem else []
            )
        except CertificateParseError as e:
            logger.warning("invalid_verification_request", error=e.message)
            raise HTTPException(status_code=400, detail=f"Invalid certificate: {e.message}")

        result = verifier.verify(leaf, intermediates, request.verification_time)
        if result.ok:
            return ChainVerificationResponse(
                trusted=True, chain=[_chain_element(cert) for cert in result.chain]
            )

        assert result.failure is not None
        logger.debug(
            "chain_verification_rejected",
            leaf=leaf.describe(),
            reason=result.failure.reason.value,
        )
        return ChainVerificationResponse(
            trusted=False,
            failure_reason=result.failure.reason.value,
            message=result.failure.message,
        )

    @router.get("/health")
    async def health_check():
        """Health check endpoint for the verification service."""
        return {
            "status": "healthy",
            "service": "certpath-verification",
            "anchors": len(verifier.anchors),
        }

    return router
