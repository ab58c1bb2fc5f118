"""Credit Registrar

Issues credits on the strength of validator attestations and retires them
permanently as proof of offset.
"""

from typing import Iterator

from eth_utils import encode_hex

from cc_registry.asset.ledger import AssetLedger
from cc_registry.core.chain import Chain
from cc_registry.core.errors import (
    AlreadyIssuedError,
    InvalidSignatureError,
    InvalidValidatorError,
    NotContractOwnerError,
    SignatureReplayedError,
    UnauthorizedRetireError,
    UnusableCreditError,
)
from cc_registry.core.guard import ReentrancyGuard, nonreentrant
from cc_registry.core.models.base import EventTypes
from cc_registry.core.services import (
    create_credit_id,
    derive_address,
    is_zero_address,
    to_address,
    to_blob,
    to_hash32,
)
from cc_registry.credit.schemas import Certification, CreditMetadata
from cc_registry.credit.signing import (
    ISSUANCE_CONTEXT,
    EcdsaRecoverer,
    SignatureRecoverer,
    build_attestation_digest,
)
from cc_registry.logging_config import logger


class Registrar:
    """Owns validator authorisation, credit metadata and the issue/retire lifecycle."""

    ISSUANCE_CONTEXT = ISSUANCE_CONTEXT

    def __init__(
        self,
        chain: Chain,
        ledger: AssetLedger,
        owner: str,
        address: str | None = None,
        recoverer: SignatureRecoverer | None = None,
    ):
        """
        Initialise the registrar.

        Args:
            chain: Ledger context providing time, network id and transactions
            ledger: Asset ledger on which this registrar is the minter
            owner: Identity allowed to manage validators
            address: Identity of this registrar, defaults to a derived address
            recoverer: Signature scheme used to recover attesters
        """
        self.chain = chain
        self.ledger = ledger
        self.owner = to_address(owner)
        self.address = to_address(address) if address else derive_address("registrar")
        self.recoverer = recoverer or EcdsaRecoverer()

        if ledger.minter != self.address:
            raise ValueError(
                f"Registrar {self.address} is not the minter of the asset ledger"
            )

        self._validators: dict[str, bool] = {}
        # digest -> block it was consumed in
        self._consumed_digests: dict[str, int] = {}
        self._credits: dict[str, CreditMetadata] = {}
        self._guard = ReentrancyGuard("Registrar")

    # Administration

    def _require_owner(self, sender: str) -> None:
        if to_address(sender) != self.owner:
            logger.warning(f"{sender} attempted an owner-only registrar operation")
            raise NotContractOwnerError(f"{sender} is not the registrar owner")

    def add_validator(self, identity: str, *, sender: str) -> bool:
        """Enable a validator. Returns whether the validator set changed."""
        self._require_owner(sender)
        if is_zero_address(identity):
            raise InvalidValidatorError("The zero address cannot be a validator")
        identity = to_address(identity)

        if self._validators.get(identity):
            return False

        with self.chain.transaction():
            self.chain.write(self._validators, identity, True)
            self.chain.emit(EventTypes.VALIDATOR_ADDED, self.address, validator=identity)
        logger.info(f"Validator {identity} added")
        return True

    def remove_validator(self, identity: str, *, sender: str) -> bool:
        """Disable a validator. Returns whether the validator set changed."""
        self._require_owner(sender)
        identity = to_address(identity)

        if not self._validators.get(identity):
            return False

        with self.chain.transaction():
            self.chain.write(self._validators, identity, False)
            self.chain.emit(EventTypes.VALIDATOR_REMOVED, self.address, validator=identity)
        logger.info(f"Validator {identity} removed")
        return True

    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        self._require_owner(sender)
        if is_zero_address(new_owner):
            raise ValueError("New owner cannot be the zero address")
        new_owner = to_address(new_owner)

        with self.chain.transaction():
            previous_owner = self.owner
            self.chain.assign(self, "owner", new_owner)
            self.chain.emit(
                EventTypes.OWNERSHIP_TRANSFERRED,
                self.address,
                previous_owner=previous_owner,
                new_owner=new_owner,
            )
        logger.info(f"Registrar ownership transferred from {previous_owner} to {new_owner}")

    def is_validator(self, identity: str) -> bool:
        return self._validators.get(to_address(identity), False)

    # Lifecycle

    @staticmethod
    def get_credit_id(certification: Certification, salt: bytes | str | int) -> str:
        return create_credit_id(certification, salt)

    def issuance_digest(self, credit_id: bytes | str, attestation_proof: bytes | str) -> bytes:
        return build_attestation_digest(
            self.address, self.chain.chain_id, credit_id, attestation_proof
        )

    def _recover_attester(self, digest: bytes, signature: bytes | str) -> str:
        try:
            signature = to_blob(signature)
        except ValueError as e:
            raise InvalidSignatureError(f"Malformed signature: {str(e)}") from e

        try:
            attester = to_address(self.recoverer.recover(digest, signature))
        except ValueError as e:
            raise InvalidSignatureError(f"Could not recover attester: {str(e)}") from e

        if not self.is_validator(attester):
            logger.warning(f"Attestation signed by non-validator {attester}")
            raise InvalidSignatureError(f"{attester} is not an enabled validator")
        return attester

    @nonreentrant
    def issue(
        self,
        certification: Certification,
        recipient: str | None,
        salt: bytes | str | int,
        attestation_proof: bytes | str,
        signature: bytes | str,
        *,
        sender: str,
    ) -> str:
        """
        Issue a credit for a certification attested by an enabled validator.

        Args:
            certification (Certification): The backing certification
            recipient (str | None): Owner of the new credit, the sender if None or zero
            salt (bytes | str | int): 32-byte disambiguator for the credit id
            attestation_proof (bytes | str): Proof blob the validator signed over
            signature (bytes | str): 65-byte validator signature over the issuance digest
            sender (str): Calling identity, recorded as the minter

        Returns:
            str: The credit id

        Raises:
            AlreadyIssuedError: If the certification and salt were issued before
            InvalidSignatureError: If the signature is malformed or not from a validator
            SignatureReplayedError: If the attestation digest was already consumed
        """
        sender = to_address(sender)
        credit_id = self.get_credit_id(certification, salt)
        if credit_id in self._credits:
            logger.error(f"Credit {credit_id} has already been issued")
            raise AlreadyIssuedError(f"Credit {credit_id} has already been issued")

        proof = to_blob(attestation_proof)
        digest = self.issuance_digest(credit_id, proof)
        attester = self._recover_attester(digest, signature)

        digest_hex = encode_hex(digest)
        if digest_hex in self._consumed_digests:
            logger.error(f"Attestation digest {digest_hex} replayed")
            raise SignatureReplayedError(f"Attestation digest {digest_hex} already consumed")
        # Consumed before minting: the mint may call back into the recipient.
        self.chain.write(self._consumed_digests, digest_hex, self.chain.block_number)

        metadata = CreditMetadata(
            credit_id=credit_id,
            certification=certification,
            salt=to_hash32(salt),
            created_at=self.chain.now,
            minter=sender,
            attester=attester,
            attestation_proof=encode_hex(proof),
        )
        self.chain.write(self._credits, credit_id, metadata)

        owner = sender if is_zero_address(recipient) else to_address(recipient)
        self.ledger.mint(owner, credit_id, sender=self.address)

        self.chain.emit(
            EventTypes.ISSUED,
            self.address,
            credit_id=credit_id,
            owner=owner,
            minter=sender,
            attester=attester,
        )
        logger.info(f"Credit {credit_id} issued to {owner}, attested by {attester}")
        return credit_id

    @nonreentrant
    def retire(self, credit_id: bytes | str, *, sender: str) -> Certification:
        """
        Permanently retire a usable credit, burning its asset.

        The certification is returned (and stays queryable) as the durable
        record of the offset claim.
        """
        sender = to_address(sender)
        credit_id = to_hash32(credit_id)
        if not self.is_usable_credit(credit_id):
            logger.error(f"Credit {credit_id} is not usable")
            raise UnusableCreditError(f"Credit {credit_id} is not usable")

        owner = self.ledger.owner_of(credit_id)
        if not self.ledger.is_authorized(owner, sender, credit_id):
            logger.warning(f"{sender} is not authorised to retire credit {credit_id}")
            raise UnauthorizedRetireError(f"{sender} may not retire credit {credit_id}")

        metadata = self._credits[credit_id].model_copy(
            update={"retired_at": self.chain.now, "retirer": sender}
        )
        self.chain.write(self._credits, credit_id, metadata)
        self.ledger.burn(credit_id, sender=self.address)

        self.chain.emit(
            EventTypes.RETIRED,
            self.address,
            credit_id=credit_id,
            owner=owner,
            retirer=sender,
        )
        logger.info(f"Credit {credit_id} retired by {sender}")
        return metadata.certification

    # Queries

    def get_metadata(self, credit_id: bytes | str) -> CreditMetadata | None:
        return self._credits.get(to_hash32(credit_id))

    def get_certification(self, credit_id: bytes | str) -> Certification | None:
        metadata = self.get_metadata(credit_id)
        return metadata.certification if metadata else None

    def is_credit_issued(self, credit_id: bytes | str) -> bool:
        metadata = self.get_metadata(credit_id)
        return metadata is not None and metadata.created_at > 0

    def is_credit_expired(self, credit_id: bytes | str) -> bool:
        metadata = self.get_metadata(credit_id)
        if metadata is None:
            return False
        expiry = metadata.certification.expiry
        return expiry != 0 and expiry <= self.chain.now

    def is_credit_retired(self, credit_id: bytes | str) -> bool:
        metadata = self.get_metadata(credit_id)
        return metadata is not None and metadata.is_retired

    def is_usable_credit(self, credit_id: bytes | str) -> bool:
        return (
            self.is_credit_issued(credit_id)
            and not self.is_credit_expired(credit_id)
            and not self.is_credit_retired(credit_id)
        )

    def is_digest_consumed(self, digest: bytes | str) -> bool:
        return to_hash32(digest) in self._consumed_digests

    def iter_credits(self) -> Iterator[CreditMetadata]:
        return iter(list(self._credits.values()))

