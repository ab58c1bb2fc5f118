"""Attestation digests and signer recovery.

Validators sign a two-layer digest. The inner hash binds the issuance
context, the credit id and the attestation proof; the outer hash wraps it in
an EIP-191 "intended validator" envelope together with the network id, so a
signature is only ever valid for one registrar deployment on one network.

    inner  = keccak256(ISSUANCE_CONTEXT || credit_id || attestation_proof)
    digest = keccak256(0x19 || 0x00 || registrar || uint256(chain_id) || inner)

Both layers use packed encoding; the context and credit id are fixed width
and the proof is the final field, so the encoding is unambiguous.
"""

from typing import Protocol

from eth_abi.packed import encode_packed
from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import keccak

from cc_registry.core.errors import InvalidSignatureError
from cc_registry.core.services import to_address, to_blob, to_bytes32

ISSUANCE_CONTEXT = "CC_REGISTRY_ISSUANCE_V1"
INTENDED_VALIDATOR_PREFIX = b"\x19\x00"

SIGNATURE_LENGTH = 65
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class SignatureRecoverer(Protocol):
    def recover(self, digest: bytes, signature: bytes) -> str:
        """Return the address that produced `signature` over `digest`, or
        raise InvalidSignatureError."""
        ...


def build_issuance_hash(credit_id: bytes | str, attestation_proof: bytes | str) -> bytes:
    return keccak(
        encode_packed(
            ["string", "bytes32", "bytes"],
            [ISSUANCE_CONTEXT, to_bytes32(credit_id), to_blob(attestation_proof)],
        )
    )


def build_attestation_digest(
    registrar: str,
    chain_id: int,
    credit_id: bytes | str,
    attestation_proof: bytes | str,
) -> bytes:
    """
    Build the digest a validator signs to authorise one issuance.

    Args:
        registrar (str): Address of the registrar that will verify the signature
        chain_id (int): Network identifier of the ledger
        credit_id (bytes | str): Id of the credit being issued
        attestation_proof (bytes | str): Proof blob the validator attests to

    Returns:
        bytes: The 32-byte digest
    """
    return keccak(
        encode_packed(
            ["bytes2", "address", "uint256", "bytes32"],
            [
                INTENDED_VALIDATOR_PREFIX,
                to_address(registrar),
                chain_id,
                build_issuance_hash(credit_id, attestation_proof),
            ],
        )
    )


def address_of(private_key: bytes | str) -> str:
    return keys.PrivateKey(to_blob(private_key)).public_key.to_checksum_address()


def sign_digest(private_key: bytes | str, digest: bytes) -> bytes:
    """Sign a digest, returning the 65-byte r || s || v encoding with v in {27, 28}."""
    signature = keys.PrivateKey(to_blob(private_key)).sign_msg_hash(digest)
    return (
        signature.r.to_bytes(32, "big")
        + signature.s.to_bytes(32, "big")
        + bytes([signature.v + 27])
    )


class EcdsaRecoverer:
    """secp256k1 public-key recovery over 65-byte r || s || v signatures.

    Accepts v as 0/1 or 27/28 and rejects high-s signatures, so each
    (digest, signer) pair has exactly one valid encoding.
    """

    def recover(self, digest: bytes, signature: bytes) -> str:
        if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_LENGTH:
            raise InvalidSignatureError(
                f"Signature must be exactly {SIGNATURE_LENGTH} bytes (r, s, v)"
            )

        r = int.from_bytes(signature[:32], "big")
        s = int.from_bytes(signature[32:64], "big")
        v = signature[64]
        if v >= 27:
            v -= 27

        if v not in (0, 1):
            raise InvalidSignatureError(f"Invalid recovery id {signature[64]}")
        if not 0 < r < SECP256K1_N or not 0 < s <= SECP256K1_N // 2:
            raise InvalidSignatureError("Signature r or s is out of range")

        try:
            public_key = keys.Signature(vrs=(v, r, s)).recover_public_key_from_msg_hash(
                digest
            )
        except (BadSignature, KeyValidationError) as e:
            raise InvalidSignatureError(f"Could not recover signer: {str(e)}") from e

        return public_key.to_checksum_address()
