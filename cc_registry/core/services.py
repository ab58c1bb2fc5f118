from typing import Any

from eth_abi import encode
from eth_utils import (
    decode_hex,
    encode_hex,
    is_hex_address,
    keccak,
    to_checksum_address,
)

from cc_registry.credit.schemas import Certification

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
UINT256_MAX = 2**256 - 1

# Field order and widths of the canonical certification encoding.
CERTIFICATION_ABI_TYPES = [
    "string",  # project_name
    "string",  # issuer_name
    "string",  # location
    "string",  # methodology
    "uint256",  # quantity
    "uint16",  # vintage
    "uint64",  # expiry
    "uint8",  # standard
]

LISTING_ABI_TYPES = [
    "bytes32",  # asset_id
    "uint256",  # price
    "uint256",  # expiry
    "bytes32",  # salt
    "uint256",  # block_number
]


def to_address(value: Any) -> str:
    """Normalise a 20-byte hex address to its EIP-55 checksummed form."""
    if not isinstance(value, str) or not is_hex_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def is_zero_address(value: str | None) -> bool:
    return value is None or int(to_address(value), 16) == 0


def check_uint256(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} must fit in uint256, got {value}")
    return value


def to_bytes32(value: bytes | str | int) -> bytes:
    """Coerce a salt or identifier to exactly 32 bytes.

    Integers are taken as uint256 and encoded big-endian. Byte strings and hex
    strings must already be 32 bytes long; shorter values are rejected rather
    than padded so that two different inputs can never encode identically.

    Args:
        value (bytes | str | int): Raw bytes, 0x-prefixed hex or an integer

    Returns:
        bytes: The 32-byte value
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return check_uint256(value, "value").to_bytes(32, "big")
    if isinstance(value, str):
        value = decode_hex(value)
    if not isinstance(value, (bytes, bytearray)):
        raise ValueError(f"Expected bytes, hex string or int, got {type(value)}")
    if len(value) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(value)}")
    return bytes(value)


def to_hash32(value: bytes | str | int) -> str:
    """Return the lowercase 0x-prefixed hex form of a 32-byte value."""
    return encode_hex(to_bytes32(value))


def to_blob(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return decode_hex(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise ValueError(f"Expected bytes or hex string, got {type(value)}")


def derive_address(label: str) -> str:
    """Deterministic deployment address for a named component."""
    return to_checksum_address(keccak(text=f"cc_registry:{label}")[-20:])


def encode_certification(certification: Certification) -> bytes:
    return encode(
        CERTIFICATION_ABI_TYPES,
        [
            certification.project_name,
            certification.issuer_name,
            certification.location,
            certification.methodology,
            certification.quantity,
            certification.vintage,
            certification.expiry,
            int(certification.standard),
        ],
    )


def create_credit_id(certification: Certification, salt: bytes | str | int) -> str:
    """
    Given a certification and a salt, return the deterministic credit id.

    The certification is ABI-encoded with fixed field order and widths and
    hashed; that hash is concatenated with the 32-byte salt and hashed again.
    The salt is what allows otherwise identical certifications to be issued
    as distinct credits.

    Args:
        certification (Certification): The certification being issued
        salt (bytes | str | int): 32-byte disambiguator

    Returns:
        str: The credit id, also used as the asset ledger token id
    """
    certification_hash = keccak(encode_certification(certification))
    return encode_hex(keccak(certification_hash + to_bytes32(salt)))


def create_listing_id(
    asset_id: bytes | str,
    price: int,
    expiry: int,
    salt: bytes | str | int,
    block_number: int,
) -> str:
    """
    Return the deterministic listing id for a listing submitted at a given
    ledger position.

    Args:
        asset_id (bytes | str): The listed asset id
        price (int): Asking price
        expiry (int): Expiry timestamp, 0 for never
        salt (bytes | str | int): Caller supplied 32-byte salt
        block_number (int): Ledger position the listing is created at

    Returns:
        str: The listing id
    """
    encoded = encode(
        LISTING_ABI_TYPES,
        [
            to_bytes32(asset_id),
            check_uint256(price, "price"),
            check_uint256(expiry, "expiry"),
            to_bytes32(salt),
            check_uint256(block_number, "block_number"),
        ],
    )
    return encode_hex(keccak(encoded))
