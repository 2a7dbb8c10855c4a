"""
``openssl verify`` as an external comparison oracle.

Only used to cross-check the in-process engine in differential tests; nothing
in the verification path depends on an openssl binary being installed.
"""

from __future__ import annotations

import shutil
import subprocess
from datetime import datetime
from typing import List, Optional

from naylence.fame.util.logging import getLogger

from .errors import OracleUnavailableError

logger = getLogger(__name__)

DEFAULT_OPENSSL_BINARY = "openssl"


def openssl_available(binary: str = DEFAULT_OPENSSL_BINARY) -> bool:
    return shutil.which(binary) is not None


def is_valid_with_openssl(
    certificate_path: str,
    ca_path: str,
    *,
    untrusted_path: Optional[str] = None,
    partial_chain: bool = True,
    at_time: Optional[datetime] = None,
    binary: str = DEFAULT_OPENSSL_BINARY,
) -> bool:
    """
    Ask ``openssl verify`` whether a certificate chains to the CA file.

    Args:
        certificate_path: PEM file holding the presented certificate
        ca_path: PEM bundle of trust anchors
        untrusted_path: PEM bundle of peer-supplied intermediates
        partial_chain: Accept chains ending at a non-self-signed anchor, which
            matches this engine's anchor semantics
        at_time: Pin the verification time

    Returns:
        True if openssl accepts the certificate, False if it rejects it

    Raises:
        OracleUnavailableError: the binary is missing or could not be executed
    """
    executable = shutil.which(binary)
    if executable is None:
        raise OracleUnavailableError(f"{binary} executable not found on PATH")

    cmd: List[str] = [executable, "verify", "-CAfile", ca_path]
    if untrusted_path:
        cmd += ["-untrusted", untrusted_path]
    if partial_chain:
        cmd.append("-partial_chain")
    if at_time is not None:
        cmd += ["-attime", str(int(at_time.timestamp()))]
    cmd.append(certificate_path)

    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise OracleUnavailableError(f"Failed to run {binary}: {e}") from e

    accepted = completed.returncode == 0
    logger.debug(
        "openssl_verify_completed",
        certificate_path=certificate_path,
        ca_path=ca_path,
        accepted=accepted,
        returncode=completed.returncode,
        stdout=completed.stdout.strip(),
        stderr=completed.stderr.strip(),
    )
    return accepted
