"""Escrowed Marketplace

Holds listed assets in escrow until they are bought or the asker takes them
back, settling purchases through the payment ledger.
"""

from typing import Iterator

from cc_registry.asset.ledger import AssetLedger
from cc_registry.core.chain import Chain
from cc_registry.core.errors import (
    AlreadyFulfilledError,
    InsufficientPaymentError,
    NotActiveError,
    PaymentRejectedError,
    RefundFailedError,
    UnauthorizedError,
)
from cc_registry.core.guard import ReentrancyGuard, nonreentrant
from cc_registry.core.models.base import EventTypes
from cc_registry.core.services import (
    check_uint256,
    create_listing_id,
    derive_address,
    to_address,
    to_hash32,
)
from cc_registry.logging_config import logger
from cc_registry.marketplace.payments import PaymentLedger
from cc_registry.marketplace.schemas import CancelledState, Listing, SoldState


class Marketplace:
    """Owns listing records and the escrow state machine."""

    def __init__(
        self,
        chain: Chain,
        ledger: AssetLedger,
        payments: PaymentLedger,
        address: str | None = None,
    ):
        self.chain = chain
        self.ledger = ledger
        self.payments = payments
        self.address = to_address(address) if address else derive_address("marketplace")

        self._listings: dict[str, Listing] = {}
        self._proceeds: dict[str, int] = {}
        self._guard = ReentrancyGuard("Marketplace")

    def get_listing_id(
        self,
        asset_id: bytes | str,
        price: int,
        expiry: int,
        salt: bytes | str | int,
        block_number: int | None = None,
    ) -> str:
        """Predict the id a listing gets when submitted at `block_number`
        (default: the current ledger position)."""
        if block_number is None:
            block_number = self.chain.block_number
        return create_listing_id(asset_id, price, expiry, salt, block_number)

    @nonreentrant
    def list(
        self,
        asset_id: bytes | str,
        price: int,
        expiry: int,
        salt: bytes | str | int,
        *,
        sender: str,
    ) -> str:
        """
        List an asset for sale and take it into escrow.

        The marketplace must be approved to move the asset on the ledger.

        Args:
            asset_id (bytes | str): Asset to sell
            price (int): Asking price
            expiry (int): Unix time after which the listing is expired, 0 for never
            salt (bytes | str | int): 32-byte caller salt for the listing id
            sender (str): Calling identity, recorded as the asker

        Returns:
            str: The listing id

        Raises:
            UnauthorizedError: If the sender may not move the asset
        """
        sender = to_address(sender)
        asset_id = to_hash32(asset_id)
        check_uint256(price, "price")
        check_uint256(expiry, "expiry")

        owner = self.ledger.owner_of(asset_id)
        if not self.ledger.is_authorized(owner, sender, asset_id):
            logger.warning(f"{sender} is not authorised to list asset {asset_id}")
            raise UnauthorizedError(f"{sender} may not list asset {asset_id}")

        listing_id = self.get_listing_id(asset_id, price, expiry, salt)
        if listing_id in self._listings:
            logger.warning(f"Listing {listing_id} resubmitted in the same block, overwriting")

        listing = Listing(
            listing_id=listing_id,
            asker=sender,
            asset_id=asset_id,
            price=price,
            expiry=expiry,
            created_at=self.chain.now,
        )
        self.chain.write(self._listings, listing_id, listing)
        self.ledger.transfer(owner, self.address, asset_id, sender=self.address)

        self.chain.emit(
            EventTypes.LISTED,
            self.address,
            listing_id=listing_id,
            asker=sender,
            asset_id=asset_id,
            price=price,
            expiry=expiry,
        )
        logger.info(f"Asset {asset_id} listed as {listing_id} at {price}")
        return listing_id

    def _get_asked_listing(self, listing_id: bytes | str, sender: str) -> Listing:
        listing = self._listings.get(to_hash32(listing_id))
        if listing is None or listing.asker != sender:
            logger.warning(f"{sender} is not the asker of listing {to_hash32(listing_id)}")
            raise UnauthorizedError(f"{sender} is not the asker of this listing")
        return listing

    @nonreentrant
    def update(
        self, listing_id: bytes | str, new_price: int, new_expiry: int, *, sender: str
    ) -> Listing:
        """Change the price and/or expiry of an active listing. A zero value
        leaves the corresponding field unchanged."""
        sender = to_address(sender)
        check_uint256(new_price, "new_price")
        check_uint256(new_expiry, "new_expiry")

        listing = self._get_asked_listing(listing_id, sender)
        if not self.is_listing_active(listing.listing_id):
            raise NotActiveError(f"Listing {listing.listing_id} is not active")

        changes = {}
        if new_price != 0:
            changes["price"] = new_price
        if new_expiry != 0:
            changes["expiry"] = new_expiry
        listing = listing.model_copy(update=changes)
        self.chain.write(self._listings, listing.listing_id, listing)

        self.chain.emit(
            EventTypes.LISTING_UPDATED,
            self.address,
            listing_id=listing.listing_id,
            price=listing.price,
            expiry=listing.expiry,
        )
        logger.info(
            f"Listing {listing.listing_id} updated: price {listing.price}, expiry {listing.expiry}"
        )
        return listing

    @nonreentrant
    def cancel(self, listing_id: bytes | str, *, sender: str) -> str:
        """Withdraw a listing and return the escrowed asset to the asker.

        Expired listings can still be cancelled; that case is reported with
        an Expired event instead of ListingCancelled.
        """
        sender = to_address(sender)
        listing = self._get_asked_listing(listing_id, sender)
        if listing.is_fulfilled:
            raise AlreadyFulfilledError(f"Listing {listing.listing_id} is already fulfilled")

        expired = self.is_listing_expired(listing.listing_id)
        listing = listing.model_copy(
            update={"state": CancelledState(cancelled_at=self.chain.now)}
        )
        self.chain.write(self._listings, listing.listing_id, listing)
        self.ledger.transfer(self.address, listing.asker, listing.asset_id, sender=self.address)

        event_type = EventTypes.EXPIRED if expired else EventTypes.LISTING_CANCELLED
        self.chain.emit(
            event_type,
            self.address,
            listing_id=listing.listing_id,
            asker=listing.asker,
            asset_id=listing.asset_id,
        )
        logger.info(f"Listing {listing.listing_id} cancelled ({event_type.value})")
        return listing.asset_id

    @nonreentrant
    def fulfill(self, listing_id: bytes | str, *, sender: str, value: int) -> str:
        """
        Buy a listed asset.

        `value` is taken from the sender's payment balance. Any amount above
        the price is refunded within the same operation. Expiry is not
        checked: an expired listing that is still open can be bought.

        Args:
            listing_id (bytes | str): Listing to buy
            sender (str): Buyer
            value (int): Amount tendered

        Returns:
            str: The purchased asset id

        Raises:
            NotActiveError: If the listing does not exist
            AlreadyFulfilledError: If the listing was sold or cancelled
            InsufficientPaymentError: If `value` is below the price
            RefundFailedError: If the buyer rejects the refund of the excess
        """
        sender = to_address(sender)
        check_uint256(value, "value")
        listing = self._listings.get(to_hash32(listing_id))
        if listing is None or not listing.is_valid:
            raise NotActiveError(f"Listing {to_hash32(listing_id)} does not exist")
        if listing.is_fulfilled:
            raise AlreadyFulfilledError(f"Listing {listing.listing_id} is already fulfilled")
        if value < listing.price:
            logger.warning(
                f"Payment of {value} below price {listing.price} for listing {listing.listing_id}"
            )
            raise InsufficientPaymentError(
                f"Listing {listing.listing_id} costs {listing.price}, got {value}"
            )

        self.payments.transfer(sender, self.address, value)

        # Terminal state is recorded before the refund and asset transfer call out.
        listing = listing.model_copy(
            update={"state": SoldState(fulfilled_at=self.chain.now, buyer=sender)}
        )
        self.chain.write(self._listings, listing.listing_id, listing)
        self.chain.write(
            self._proceeds, listing.asker, self._proceeds.get(listing.asker, 0) + listing.price
        )

        refund = value - listing.price
        if refund > 0:
            try:
                self.payments.transfer(self.address, sender, refund)
            except PaymentRejectedError as e:
                logger.error(f"Refund of {refund} to {sender} failed: {str(e)}")
                raise RefundFailedError(f"Refund of {refund} to {sender} was rejected") from e

        self.ledger.transfer(self.address, sender, listing.asset_id, sender=self.address)

        self.chain.emit(
            EventTypes.FULFILLED,
            self.address,
            listing_id=listing.listing_id,
            asker=listing.asker,
            bidder=sender,
            asset_id=listing.asset_id,
            price=listing.price,
            refund=refund,
        )
        logger.info(f"Listing {listing.listing_id} fulfilled by {sender} for {listing.price}")
        return listing.asset_id

    @nonreentrant
    def withdraw_proceeds(self, *, sender: str) -> int:
        """Pay out the sender's accumulated sale proceeds."""
        sender = to_address(sender)
        amount = self._proceeds.get(sender, 0)
        if amount == 0:
            return 0

        self.chain.write(self._proceeds, sender, 0)
        self.payments.transfer(self.address, sender, amount)

        self.chain.emit(
            EventTypes.PROCEEDS_WITHDRAWN, self.address, payee=sender, amount=amount
        )
        logger.info(f"{sender} withdrew {amount} in proceeds")
        return amount

    # Queries

    def get_listing(self, listing_id: bytes | str) -> Listing | None:
        return self._listings.get(to_hash32(listing_id))

    def is_listing_valid(self, listing_id: bytes | str) -> bool:
        listing = self.get_listing(listing_id)
        return listing is not None and listing.is_valid

    def is_listing_fulfilled(self, listing_id: bytes | str) -> bool:
        listing = self.get_listing(listing_id)
        return listing is not None and listing.is_fulfilled

    def is_listing_expired(self, listing_id: bytes | str) -> bool:
        listing = self.get_listing(listing_id)
        if listing is None:
            return False
        return listing.expiry != 0 and listing.expiry < self.chain.now

    def is_listing_active(self, listing_id: bytes | str) -> bool:
        return (
            self.is_listing_valid(listing_id)
            and not self.is_listing_fulfilled(listing_id)
            and not self.is_listing_expired(listing_id)
        )

    def proceeds_of(self, address: str) -> int:
        return self._proceeds.get(to_address(address), 0)

    def iter_listings(self) -> Iterator[Listing]:
        return iter(list(self._listings.values()))

