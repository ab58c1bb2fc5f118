"""In-memory transferable-asset ledger.

This is the collaborator the registrar and marketplace are built against:
ownership records, single-token approvals, operator approvals, transfers
with a receiver acknowledgment, and minter-only mint/burn. Token ids are the
32-byte credit ids issued by the registrar.
"""

from typing import Callable

from eth_utils import encode_hex

from cc_registry.core.chain import Chain
from cc_registry.core.errors import (
    MinterOnlyError,
    ReceiverRejectedError,
    TokenAlreadyMintedError,
    TokenNotFoundError,
    TransferUnauthorizedError,
)
from cc_registry.core.models.base import EventTypes
from cc_registry.core.services import (
    ZERO_ADDRESS,
    derive_address,
    is_zero_address,
    to_address,
    to_blob,
    to_hash32,
)
from cc_registry.logging_config import logger
from cc_registry.settings import settings

# Selector of onERC721Received(address,address,uint256,bytes)
RECEIVER_ACK = "0x150b7a02"

# (operator, from, token_id, data) -> acknowledgment
ReceiverHook = Callable[[str, str, str, bytes], bytes | str]


class AssetLedger:
    def __init__(
        self,
        chain: Chain,
        minter: str,
        name: str = settings.ASSET_NAME,
        symbol: str = settings.ASSET_SYMBOL,
        address: str | None = None,
    ) -> None:
        self.chain = chain
        self.minter = to_address(minter)
        self.name = name
        self.symbol = symbol
        self.address = to_address(address) if address else derive_address("asset_ledger")

        self._owners: dict[str, str] = {}
        self._balances: dict[str, int] = {}
        self._token_approvals: dict[str, str] = {}
        self._operator_approvals: dict[tuple[str, str], bool] = {}
        # Programmable accounts; configuration rather than ledger state.
        self._receivers: dict[str, ReceiverHook] = {}

    def register_receiver(self, address: str, hook: ReceiverHook) -> None:
        """Mark `address` as a programmable account whose `hook` must
        acknowledge every asset it receives."""
        self._receivers[to_address(address)] = hook

    def unregister_receiver(self, address: str) -> None:
        self._receivers.pop(to_address(address), None)

    # Queries

    def exists(self, token_id: bytes | str) -> bool:
        return to_hash32(token_id) in self._owners

    def owner_of(self, token_id: bytes | str) -> str:
        token_id = to_hash32(token_id)
        owner = self._owners.get(token_id)
        if owner is None:
            raise TokenNotFoundError(f"Asset {token_id} does not exist")
        return owner

    def balance_of(self, owner: str) -> int:
        return self._balances.get(to_address(owner), 0)

    def get_approved(self, token_id: bytes | str) -> str | None:
        token_id = to_hash32(token_id)
        self.owner_of(token_id)
        return self._token_approvals.get(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return (to_address(owner), to_address(operator)) in self._operator_approvals

    def is_authorized(self, owner: str, spender: str, token_id: bytes | str) -> bool:
        """Whether `spender` is the owner, the approved delegate or an
        operator of the owner for this asset."""
        owner = to_address(owner)
        spender = to_address(spender)
        return (
            spender == owner
            or self.get_approved(token_id) == spender
            or self.is_approved_for_all(owner, spender)
        )

    # Delegation

    def approve(self, to: str | None, token_id: bytes | str, *, sender: str) -> None:
        token_id = to_hash32(token_id)
        sender = to_address(sender)
        owner = self.owner_of(token_id)
        approved = None if is_zero_address(to) else to_address(to)

        if approved == owner:
            raise ValueError("Cannot approve the current owner")
        if sender != owner and not self.is_approved_for_all(owner, sender):
            raise TransferUnauthorizedError(
                f"{sender} is neither owner nor operator of asset {token_id}"
            )

        with self.chain.transaction():
            if approved is None:
                self.chain.delete(self._token_approvals, token_id)
            else:
                self.chain.write(self._token_approvals, token_id, approved)
            self.chain.emit(
                EventTypes.APPROVAL,
                self.address,
                owner=owner,
                approved=approved or ZERO_ADDRESS,
                token_id=token_id,
            )

    def set_approval_for_all(self, operator: str, approved: bool, *, sender: str) -> None:
        owner = to_address(sender)
        operator = to_address(operator)
        if operator == owner:
            raise ValueError("Cannot set approval for self")

        with self.chain.transaction():
            if approved:
                self.chain.write(self._operator_approvals, (owner, operator), True)
            else:
                self.chain.delete(self._operator_approvals, (owner, operator))
            self.chain.emit(
                EventTypes.APPROVAL_FOR_ALL,
                self.address,
                owner=owner,
                operator=operator,
                approved=approved,
            )

    # Movement

    def transfer(
        self,
        from_: str,
        to: str,
        token_id: bytes | str,
        *,
        sender: str,
        data: bytes | str = b"",
    ) -> None:
        """Move an asset, then require the recipient's acknowledgment if it
        is a programmable account."""
        token_id = to_hash32(token_id)
        from_ = to_address(from_)
        sender = to_address(sender)
        if is_zero_address(to):
            raise ValueError("Cannot transfer to the zero address")
        to = to_address(to)

        owner = self.owner_of(token_id)
        if owner != from_:
            raise TransferUnauthorizedError(f"{from_} does not own asset {token_id}")
        if not self.is_authorized(owner, sender, token_id):
            raise TransferUnauthorizedError(
                f"{sender} is not authorized to transfer asset {token_id}"
            )

        with self.chain.transaction():
            self.chain.delete(self._token_approvals, token_id)
            self.chain.write(self._balances, from_, self._balances[from_] - 1)
            self.chain.write(self._balances, to, self._balances.get(to, 0) + 1)
            self.chain.write(self._owners, token_id, to)
            self.chain.emit(
                EventTypes.TRANSFER, self.address, from_=from_, to=to, token_id=token_id
            )
            self._check_receiver(sender, from_, to, token_id, to_blob(data))

    def mint(self, to: str, token_id: bytes | str, *, sender: str) -> None:
        token_id = to_hash32(token_id)
        self._require_minter(sender)
        if is_zero_address(to):
            raise ValueError("Cannot mint to the zero address")
        to = to_address(to)
        if token_id in self._owners:
            raise TokenAlreadyMintedError(f"Asset {token_id} already exists")

        with self.chain.transaction():
            self.chain.write(self._owners, token_id, to)
            self.chain.write(self._balances, to, self._balances.get(to, 0) + 1)
            self.chain.emit(
                EventTypes.TRANSFER,
                self.address,
                from_=ZERO_ADDRESS,
                to=to,
                token_id=token_id,
            )
            self._check_receiver(self.minter, ZERO_ADDRESS, to, token_id, b"")

    def burn(self, token_id: bytes | str, *, sender: str) -> None:
        token_id = to_hash32(token_id)
        self._require_minter(sender)
        owner = self.owner_of(token_id)

        with self.chain.transaction():
            self.chain.delete(self._token_approvals, token_id)
            self.chain.write(self._balances, owner, self._balances[owner] - 1)
            self.chain.delete(self._owners, token_id)
            self.chain.emit(
                EventTypes.TRANSFER,
                self.address,
                from_=owner,
                to=ZERO_ADDRESS,
                token_id=token_id,
            )

    def _require_minter(self, sender: str) -> None:
        if to_address(sender) != self.minter:
            raise MinterOnlyError(f"{sender} is not the minter")

    def _check_receiver(
        self, operator: str, from_: str, to: str, token_id: str, data: bytes
    ) -> None:
        hook = self._receivers.get(to)
        if hook is None:
            return

        ack = hook(operator, from_, token_id, data)
        if isinstance(ack, (bytes, bytearray)):
            ack = encode_hex(ack)
        if not isinstance(ack, str) or ack.lower() != RECEIVER_ACK:
            logger.warning(f"Receiver {to} did not acknowledge asset {token_id}")
            raise ReceiverRejectedError(f"Receiver {to} rejected asset {token_id}")

