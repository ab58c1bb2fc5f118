import pytest
from eth_utils import decode_hex, keccak

from cc_registry.core.errors import InvalidSignatureError
from cc_registry.core.services import to_bytes32, to_hash32
from cc_registry.credit.signing import (
    ISSUANCE_CONTEXT,
    SECP256K1_N,
    EcdsaRecoverer,
    address_of,
    build_attestation_digest,
    build_issuance_hash,
    sign_digest,
)

REGISTRAR = "0x00000000000000000000000000000000000000C0"
CREDIT_ID = to_hash32(99)
VALIDATOR_KEY = b"\x01" * 32
OTHER_KEY = b"\x02" * 32


@pytest.fixture()
def digest():
    return build_attestation_digest(REGISTRAR, 31337, CREDIT_ID, b"proof")


class TestDigest:
    def test_inner_hash_is_packed(self):
        expected = keccak(ISSUANCE_CONTEXT.encode() + to_bytes32(CREDIT_ID) + b"proof")
        assert build_issuance_hash(CREDIT_ID, b"proof") == expected

    def test_outer_digest_layout(self, digest):
        inner = build_issuance_hash(CREDIT_ID, b"proof")
        expected = keccak(
            b"\x19\x00" + decode_hex(REGISTRAR) + (31337).to_bytes(32, "big") + inner
        )
        assert digest == expected

    def test_digest_bound_to_network_and_registrar(self, digest):
        assert build_attestation_digest(REGISTRAR, 1, CREDIT_ID, b"proof") != digest
        other_registrar = "0x00000000000000000000000000000000000000C1"
        assert build_attestation_digest(other_registrar, 31337, CREDIT_ID, b"proof") != digest

    def test_proof_is_part_of_the_digest(self, digest):
        assert build_attestation_digest(REGISTRAR, 31337, CREDIT_ID, b"proof2") != digest


class TestEcdsaRecoverer:
    def test_recovers_signer(self, digest):
        signature = sign_digest(VALIDATOR_KEY, digest)
        assert len(signature) == 65
        assert signature[64] in (27, 28)
        assert EcdsaRecoverer().recover(digest, signature) == address_of(VALIDATOR_KEY)

    def test_accepts_raw_recovery_id(self, digest):
        signature = sign_digest(VALIDATOR_KEY, digest)
        raw = signature[:64] + bytes([signature[64] - 27])
        assert EcdsaRecoverer().recover(digest, raw) == address_of(VALIDATOR_KEY)

    def test_different_key_recovers_different_address(self, digest):
        signature = sign_digest(OTHER_KEY, digest)
        assert EcdsaRecoverer().recover(digest, signature) != address_of(VALIDATOR_KEY)

    @pytest.mark.parametrize("length", [0, 64, 66])
    def test_rejects_wrong_length(self, digest, length):
        with pytest.raises(InvalidSignatureError):
            EcdsaRecoverer().recover(digest, b"\x01" * length)

    def test_rejects_high_s(self, digest):
        signature = sign_digest(VALIDATOR_KEY, digest)
        s = int.from_bytes(signature[32:64], "big")
        flipped_v = 55 - signature[64]
        malleated = signature[:32] + (SECP256K1_N - s).to_bytes(32, "big") + bytes([flipped_v])

        with pytest.raises(InvalidSignatureError):
            EcdsaRecoverer().recover(digest, malleated)

    def test_rejects_zero_r(self, digest):
        signature = sign_digest(VALIDATOR_KEY, digest)
        with pytest.raises(InvalidSignatureError):
            EcdsaRecoverer().recover(digest, b"\x00" * 32 + signature[32:])

    def test_rejects_bad_recovery_id(self, digest):
        signature = sign_digest(VALIDATOR_KEY, digest)
        with pytest.raises(InvalidSignatureError):
            EcdsaRecoverer().recover(digest, signature[:64] + bytes([29]))
