"""Tests for per-chain constraint checks and candidate selection."""

import datetime

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from pki_helpers import NOW, issue, issue_intermediate, issue_leaf, issue_root

from naylence.fame.certpath import (
    CertificatePool,
    ChainValidator,
    FailureReason,
    VerificationFailure,
    verify_signature,
)

DAY = datetime.timedelta(days=1)


def validator_for(*anchors, at=NOW):
    return ChainValidator(CertificatePool(a.cert for a in anchors), at)


class TestSignature:
    def test_verify_signature(self, pki):
        assert verify_signature(pki.leaf.cert, pki.intermediate.cert)
        assert verify_signature(pki.intermediate.cert, pki.root.cert)
        assert verify_signature(pki.root.cert, pki.root.cert)

    def test_verify_signature_wrong_issuer(self, pki):
        assert not verify_signature(pki.leaf.cert, pki.root.cert)

    def test_forged_signature_is_rejected(self):
        root = issue_root()
        leaf = issue_leaf(root, sign_with=ec.generate_private_key(ec.SECP256R1()))

        check = validator_for(root).check((leaf.cert, root.cert))

        assert check.failure is not None
        assert check.failure.reason == FailureReason.INVALID_SIGNATURE
        assert check.failure.certificate == leaf.cert
        assert check.failure.depth == 0
        assert check.progress == 0


class TestValidity:
    def test_expired_leaf(self):
        root = issue_root()
        leaf = issue_leaf(root, not_before=NOW - 30 * DAY, not_after=NOW - DAY)

        check = validator_for(root).check((leaf.cert, root.cert))

        assert check.failure.reason == FailureReason.EXPIRED
        assert check.failure.depth == 0

    def test_not_yet_valid_intermediate(self):
        root = issue_root()
        intermediate = issue_intermediate(root, not_before=NOW + DAY)
        leaf = issue_leaf(intermediate)

        check = validator_for(root).check((leaf.cert, intermediate.cert, root.cert))

        assert check.failure.reason == FailureReason.NOT_YET_VALID
        assert check.failure.certificate == intermediate.cert
        assert check.progress == 1

    def test_expired_anchor_is_rejected(self):
        root = issue_root(not_before=NOW - 30 * DAY, not_after=NOW - DAY)
        leaf = issue_leaf(root)

        check = validator_for(root).check((leaf.cert, root.cert))

        assert check.failure.reason == FailureReason.EXPIRED
        assert check.failure.certificate == root.cert
        assert check.progress == 1

    def test_boundaries_are_inclusive(self):
        root = issue_root(not_before=NOW - DAY, not_after=NOW + DAY)

        assert validator_for(root, at=root.cert.not_before).check((root.cert,)).passed
        assert validator_for(root, at=root.cert.not_after).check((root.cert,)).passed


class TestIssuerCapability:
    def test_issuer_without_ca_flag(self):
        root = issue_root()
        not_ca = issue(
            "Not A CA",
            issuer=root,
            ca=False,
            key_usage=None,
        )
        leaf = issue_leaf(not_ca)

        check = validator_for(root).check((leaf.cert, not_ca.cert, root.cert))

        assert check.failure.reason == FailureReason.NOT_A_CERTIFICATE_AUTHORITY
        assert check.failure.certificate == not_ca.cert
        assert check.failure.depth == 1
        assert "is not a CA" in check.failure.message

    def test_issuer_without_basic_constraints(self):
        root = issue_root()
        intermediate = issue("No BC Intermediate", issuer=root, basic_constraints=False, key_usage=None)
        leaf = issue_leaf(intermediate)

        check = validator_for(root).check((leaf.cert, intermediate.cert, root.cert))

        assert check.failure.reason == FailureReason.NOT_A_CERTIFICATE_AUTHORITY

    def test_issuer_without_key_cert_sign(self):
        from cryptography import x509

        signing_only = x509.KeyUsage(
            digital_signature=True,
            content_commitment=False,
            key_encipherment=False,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=False,
            crl_sign=True,
            encipher_only=False,
            decipher_only=False,
        )
        root = issue_root()
        intermediate = issue_intermediate(root, key_usage=signing_only)
        leaf = issue_leaf(intermediate)

        check = validator_for(root).check((leaf.cert, intermediate.cert, root.cert))

        assert check.failure.reason == FailureReason.NOT_A_CERTIFICATE_AUTHORITY
        assert "keyCertSign" in check.failure.message

    def test_anchor_as_issuer_must_be_a_ca(self):
        anchor = issue("Trusted Non-CA", ca=False, key_usage=None)
        leaf = issue_leaf(anchor)

        check = validator_for(anchor).check((leaf.cert, anchor.cert))

        assert check.failure.reason == FailureReason.NOT_A_CERTIFICATE_AUTHORITY
        assert check.failure.certificate == anchor.cert

    def test_issuer_without_key_usage_extension_is_accepted(self):
        root = issue_root(key_usage=None)
        leaf = issue_leaf(root)

        assert validator_for(root).check((leaf.cert, root.cert)).passed

    def test_non_ca_anchor_alone_is_trusted(self):
        anchor = issue("Pinned Server", ca=False)

        assert validator_for(anchor).check((anchor.cert,)).passed


class TestPathLength:
    def test_pathlen_zero_allows_direct_issue(self, pki):
        check = validator_for(pki.root).check((pki.leaf.cert, pki.intermediate.cert, pki.root.cert))

        assert check.passed
        assert check.progress == 3

    def test_pathlen_zero_rejects_ca_below(self):
        root = issue_root(path_length=0)
        intermediate = issue_intermediate(root)
        leaf = issue_leaf(intermediate)

        check = validator_for(root).check((leaf.cert, intermediate.cert, root.cert))

        assert check.failure.reason == FailureReason.PATH_LENGTH_EXCEEDED
        assert check.failure.certificate == root.cert
        assert check.failure.depth == 2
        assert check.progress == 1

    def test_pathlen_one_from_root(self):
        root = issue_root(path_length=1)
        first = issue_intermediate(root, "Intermediate 1")
        second = issue_intermediate(first, "Intermediate 2")
        leaf = issue_leaf(second)

        ok = validator_for(root).check((issue_leaf(first).cert, first.cert, root.cert))
        too_long = validator_for(root).check((leaf.cert, second.cert, first.cert, root.cert))

        assert ok.passed
        assert too_long.failure.reason == FailureReason.PATH_LENGTH_EXCEEDED
        assert too_long.failure.certificate == root.cert

    def test_intermediate_pathlen_constrains_below_it(self):
        root = issue_root()
        constrained = issue_intermediate(root, "Constrained", path_length=0)
        sub_ca = issue_intermediate(constrained, "Sub CA")
        leaf = issue_leaf(sub_ca)

        check = validator_for(root).check((leaf.cert, sub_ca.cert, constrained.cert, root.cert))

        assert check.failure.reason == FailureReason.PATH_LENGTH_EXCEEDED
        assert check.failure.certificate == constrained.cert


class TestAnchorTermination:
    def test_chain_ending_outside_anchor_pool(self, pki):
        check = validator_for(pki.root).check((pki.leaf.cert, pki.intermediate.cert))

        assert check.failure.reason == FailureReason.UNTRUSTED_ANCHOR
        assert check.failure.certificate == pki.intermediate.cert
        assert check.progress == 1

    def test_anchor_own_signature_is_not_checked(self, pki):
        # the intermediate is trusted directly; its root is unknown to the validator
        check = validator_for(pki.intermediate).check((pki.leaf.cert, pki.intermediate.cert))

        assert check.passed

    def test_empty_chain_is_rejected(self, pki):
        with pytest.raises(ValueError):
            validator_for(pki.root).check(())


class TestSelect:
    def test_no_candidates_is_no_path_found(self, pki):
        result = validator_for(pki.root).select([])

        assert not result.ok
        assert result.reason == FailureReason.NO_PATH_FOUND
        assert result.failure.chain == ()

    def test_first_passing_candidate_wins(self, pki):
        good = (pki.leaf.cert, pki.intermediate.cert, pki.root.cert)
        bad = (pki.leaf.cert, pki.intermediate.cert)

        result = validator_for(pki.root).select([bad, good, good])

        assert result.ok
        assert result.chain == good

    def test_furthest_progress_failure_is_reported(self):
        root = issue_root()
        intermediate = issue_intermediate(root, not_before=NOW + DAY)
        leaf = issue_leaf(intermediate)
        forged = issue_leaf(root, sign_with=ec.generate_private_key(ec.SECP256R1()))

        shallow = (forged.cert, root.cert)  # fails at depth 0
        deep = (leaf.cert, intermediate.cert, root.cert)  # fails at depth 1

        result = validator_for(root).select([shallow, deep])

        assert result.reason == FailureReason.NOT_YET_VALID
        assert isinstance(result.failure, VerificationFailure)
        assert result.failure.chain == deep

    def test_ties_go_to_the_earlier_candidate(self):
        root = issue_root()
        expired = issue_leaf(root, not_before=NOW - 30 * DAY, not_after=NOW - DAY)
        early = issue_leaf(root, not_before=NOW + DAY)

        result = validator_for(root).select([(expired.cert, root.cert), (early.cert, root.cert)])

        assert result.reason == FailureReason.EXPIRED

    def test_select_consumes_lazily(self, pki):
        good = (pki.leaf.cert, pki.intermediate.cert, pki.root.cert)

        def candidates():
            yield good
            raise AssertionError("search should stop at the first accepted chain")

        assert validator_for(pki.root).select(candidates()).chain == good
