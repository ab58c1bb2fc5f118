from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from cc_registry.core.models.base import ListingStatus


class ActiveState(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["active"] = "active"


class SoldState(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["sold"] = "sold"
    fulfilled_at: int
    buyer: str


class CancelledState(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["cancelled"] = "cancelled"
    cancelled_at: int


ListingState = Annotated[
    Union[ActiveState, SoldState, CancelledState], Field(discriminator="kind")
]


class Listing(BaseModel):
    """An escrowed offer to sell one asset at a fixed price.

    `state` starts Active and moves exactly once, to Sold or Cancelled.
    Both terminal states count as fulfilled. Records are immutable; the
    marketplace stores a new copy on every change.
    """

    model_config = ConfigDict(frozen=True)

    listing_id: str
    asker: str
    asset_id: str
    price: int = Field(ge=0)
    expiry: int = Field(default=0, ge=0, description="Unix time the listing expires, 0 for never.")
    created_at: int
    state: ListingState = Field(default_factory=ActiveState)

    @property
    def status(self) -> ListingStatus:
        return ListingStatus(self.state.kind)

    @property
    def bidder(self) -> str | None:
        return self.state.buyer if isinstance(self.state, SoldState) else None

    @property
    def fulfilled_at(self) -> int | None:
        return self.state.fulfilled_at if isinstance(self.state, SoldState) else None

    @property
    def is_valid(self) -> bool:
        return self.created_at > 0

    @property
    def is_fulfilled(self) -> bool:
        return not isinstance(self.state, ActiveState)


class ListingStatusRead(BaseModel):
    listing_id: str
    valid: bool
    active: bool
    expired: bool
    fulfilled: bool


class ListingIdRequest(BaseModel):
    asset_id: str
    price: int = Field(ge=0)
    expiry: int = Field(default=0, ge=0)
    salt: str
    block_number: int | None = Field(
        default=None, description="Ledger position to predict for, defaults to the current one."
    )


class ListingIdRead(BaseModel):
    listing_id: str
    block_number: int


class MarketStatisticsRead(BaseModel):
    total_listings: int
    active_listings: int
    sold_listings: int
    cancelled_listings: int
    total_volume: int
    average_sale_price: float | None
