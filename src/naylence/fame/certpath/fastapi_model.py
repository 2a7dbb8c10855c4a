from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ChainVerificationRequest(BaseModel):
    """Chain verification request payload."""

    certificate_pem: str = Field(..., description="Presented certificate in PEM format")
    intermediates_pem: Optional[str] = Field(
        None, description="Peer-supplied intermediate certificates, concatenated PEM"
    )
    verification_time: Optional[datetime] = Field(
        None, description="Instant to verify at; defaults to the time of the request", alias="verificationTime"
    )

    model_config = {"populate_by_name": True}


class ChainElement(BaseModel):
    """One certificate of a trusted chain."""

    subject: str = Field(..., description="Subject distinguished name (RFC 4514)")
    issuer: str = Field(..., description="Issuer distinguished name (RFC 4514)")
    serial_number: str = Field(..., description="Serial number, hex encoded", alias="serialNumber")
    fingerprint: str = Field(..., description="SHA-256 fingerprint of the DER encoding")

    model_config = {"populate_by_name": True}


class ChainVerificationResponse(BaseModel):
    """Chain verification outcome."""

    trusted: bool = Field(..., description="Whether a chain to a trust anchor was established")
    chain: List[ChainElement] = Field(default_factory=list, description="Trusted chain, leaf first")
    failure_reason: Optional[str] = Field(None, description="Failure category", alias="failureReason")
    message: Optional[str] = Field(None, description="Failure detail")

    model_config = {"populate_by_name": True}
