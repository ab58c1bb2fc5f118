from fastapi import APIRouter, Depends, HTTPException

from cc_registry.core.services import to_hash32
from cc_registry.exchange import Exchange, get_exchange
from cc_registry.marketplace.schemas import (
    Listing,
    ListingIdRead,
    ListingIdRequest,
    ListingStatusRead,
    MarketStatisticsRead,
)
from cc_registry.reporting import market_statistics

# Router initialisation
router = APIRouter(tags=["Listings"])


def _parse_listing_id(listing_id: str) -> str:
    try:
        return to_hash32(listing_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid listing id: {str(e)}")


@router.post("/id", response_model=ListingIdRead)
def predict_listing_id(request: ListingIdRequest, exchange: Exchange = Depends(get_exchange)):
    """Predict the id of a listing submitted at the given (or current) ledger position."""
    block_number = (
        request.block_number
        if request.block_number is not None
        else exchange.chain.block_number
    )
    try:
        listing_id = exchange.marketplace.get_listing_id(
            request.asset_id,
            request.price,
            request.expiry,
            request.salt,
            block_number=block_number,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ListingIdRead(listing_id=listing_id, block_number=block_number)


@router.get("/statistics", response_model=MarketStatisticsRead)
def get_market_statistics(exchange: Exchange = Depends(get_exchange)):
    return market_statistics(exchange.marketplace)


@router.get("/{listing_id}", response_model=Listing)
def get_listing(listing_id: str, exchange: Exchange = Depends(get_exchange)):
    listing = exchange.marketplace.get_listing(_parse_listing_id(listing_id))
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing {listing_id} not found")
    return listing


@router.get("/{listing_id}/status", response_model=ListingStatusRead)
def get_listing_status(listing_id: str, exchange: Exchange = Depends(get_exchange)):
    listing_id = _parse_listing_id(listing_id)
    marketplace = exchange.marketplace
    return ListingStatusRead(
        listing_id=listing_id,
        valid=marketplace.is_listing_valid(listing_id),
        active=marketplace.is_listing_active(listing_id),
        expired=marketplace.is_listing_expired(listing_id),
        fulfilled=marketplace.is_listing_fulfilled(listing_id),
    )
