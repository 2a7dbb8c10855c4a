"""
Candidate chain discovery.

The builder walks the issuer relation depth-first from the leaf, using only
the certificates it was handed: the peer-supplied intermediate pool and the
anchor pool. An issuer that appears in neither pool is never fetched or
invented, so a leaf whose bridging intermediate was not supplied has no path
even when that intermediate exists elsewhere.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Set

from naylence.fame.util.logging import getLogger

from .certificate import Certificate
from .pool import CertificatePool
from .result import Chain

logger = getLogger(__name__)


class PathBuilder:
    """Enumerates candidate chains from a leaf to an anchor."""

    def __init__(
        self,
        intermediates: CertificatePool,
        anchors: CertificatePool,
        max_depth: Optional[int] = None,
    ):
        self._intermediates = intermediates
        self._anchors = anchors
        self._max_depth = max_depth if max_depth is not None else self._distinct_certificates() + 1

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def _distinct_certificates(self) -> int:
        raw = {c.raw_bytes for c in self._anchors}
        raw.update(c.raw_bytes for c in self._intermediates)
        return len(raw)

    def build(self, leaf: Certificate) -> Iterator[Chain]:
        """
        Yield candidate chains (leaf first, anchor last) in discovery order.

        A node present in the anchor pool ends its path, whatever its own
        issuer: a trusted certificate does not need to chain any further.
        """
        path: List[Certificate] = [leaf]
        visited: Set[bytes] = {leaf.raw_bytes}
        yield from self._extend(path, visited)

    def _extend(self, path: List[Certificate], visited: Set[bytes]) -> Iterator[Chain]:
        node = path[-1]

        if self._anchors.contains(node):
            logger.debug("candidate_chain_found", length=len(path), anchor=node.describe())
            yield tuple(path)
            return

        if len(path) >= self._max_depth:
            logger.debug("path_depth_limit_reached", max_depth=self._max_depth, node=node.describe())
            return

        for issuer in self._issuer_candidates(node):
            if issuer.raw_bytes in visited:
                continue
            path.append(issuer)
            visited.add(issuer.raw_bytes)
            try:
                yield from self._extend(path, visited)
            finally:
                visited.discard(issuer.raw_bytes)
                path.pop()

    def _issuer_candidates(self, node: Certificate) -> List[Certificate]:
        seen: Set[bytes] = set()
        candidates: List[Certificate] = []
        for issuer in self._anchors.issuers_of(node) + self._intermediates.issuers_of(node):
            if issuer.raw_bytes not in seen:
                seen.add(issuer.raw_bytes)
                candidates.append(issuer)

        aki = node.authority_key_identifier
        if aki is not None:
            # stable: anchors before intermediates within each rank
            candidates.sort(key=lambda c: c.subject_key_identifier != aki)
        return candidates
