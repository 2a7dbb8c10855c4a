"""
Trust store configuration and anchor loading.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

from naylence.fame.util.logging import getLogger

from .errors import CertificateParseError, TrustStoreError
from .pool import CertificatePool
from .verifier import Verifier

logger = getLogger(__name__)

ENV_VAR_CA_CERTS = "FAME_CA_CERTS"
ENV_VAR_MAX_PATH_DEPTH = "FAME_CERTPATH_MAX_DEPTH"

PEM_MARKER = "-----BEGIN"


class TrustStoreConfig(BaseModel):
    """Where trust anchors come from and how far path building may go."""

    trust_store: Optional[str] = Field(
        None, description="PEM bundle content, or a path to a PEM bundle file"
    )
    max_path_depth: Optional[int] = Field(
        None, ge=1, description="Maximum chain length; defaults to the number of known certificates + 1"
    )

    @classmethod
    def from_env(cls) -> TrustStoreConfig:
        max_depth = os.environ.get(ENV_VAR_MAX_PATH_DEPTH)
        return cls(
            trust_store=os.environ.get(ENV_VAR_CA_CERTS) or None,
            max_path_depth=int(max_depth) if max_depth else None,
        )


def read_trust_store(source: str) -> str:
    """
    Resolve a trust store reference to PEM content.

    ``source`` is either PEM content or a path to a file holding it.
    """
    if source.lstrip().startswith(PEM_MARKER):
        return source

    try:
        with open(source) as f:
            return f.read()
    except OSError as e:
        logger.error("trust_store_read_failed", trust_store_path=source, error=str(e))
        raise TrustStoreError(f"Failed to read trust store from {source}: {e}", source=source) from e


def load_trust_anchors(config: Optional[TrustStoreConfig] = None) -> CertificatePool:
    """
    Build the anchor pool described by ``config`` (or the environment).

    Raises:
        TrustStoreError: no trust store is configured, it cannot be read, or
            it holds no valid certificates
    """
    config = config or TrustStoreConfig.from_env()
    if not config.trust_store:
        raise TrustStoreError(
            f"Trust store not configured and {ENV_VAR_CA_CERTS} environment variable not set"
        )

    content = read_trust_store(config.trust_store)
    source = None if config.trust_store.lstrip().startswith(PEM_MARKER) else config.trust_store
    try:
        anchors = CertificatePool.from_pem(content)
    except CertificateParseError as e:
        raise TrustStoreError(f"No valid certificates found in trust store: {e.message}", source=source) from e

    logger.debug("trust_anchors_loaded", anchor_count=len(anchors), trust_store_path=source)
    return anchors


def create_verifier(config: Optional[TrustStoreConfig] = None) -> Verifier:
    config = config or TrustStoreConfig.from_env()
    return Verifier(load_trust_anchors(config), max_depth=config.max_path_depth)
