"""
Carbon Credit Registry

Attestation-gated issuance and retirement of carbon credits, and an escrowed
marketplace for trading them.
"""

from .asset.ledger import RECEIVER_ACK, AssetLedger
from .core.chain import Chain
from .core.models.base import CreditStandard, EventTypes, ListingStatus
from .core.services import ZERO_ADDRESS
from .credit.registrar import Registrar
from .credit.schemas import Certification, CreditMetadata
from .credit.signing import (
    ISSUANCE_CONTEXT,
    EcdsaRecoverer,
    SignatureRecoverer,
    build_attestation_digest,
    sign_digest,
)
from .exchange import Exchange
from .marketplace.payments import PaymentLedger
from .marketplace.schemas import Listing
from .marketplace.services import Marketplace

__version__ = "1.0.0"
__all__ = [
    "AssetLedger",
    "Certification",
    "Chain",
    "CreditMetadata",
    "CreditStandard",
    "EcdsaRecoverer",
    "EventTypes",
    "Exchange",
    "ISSUANCE_CONTEXT",
    "Listing",
    "ListingStatus",
    "Marketplace",
    "PaymentLedger",
    "RECEIVER_ACK",
    "Registrar",
    "SignatureRecoverer",
    "ZERO_ADDRESS",
    "build_attestation_digest",
    "sign_digest",
]
