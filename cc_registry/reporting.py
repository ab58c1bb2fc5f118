"""
Credit and listing reports

Flattens registrar and marketplace state into pandas DataFrames for audit
exports, and summarises trading activity.
"""

from typing import Any, Dict

import pandas as pd

from cc_registry.credit.registrar import Registrar
from cc_registry.marketplace.services import Marketplace

CREDIT_COLUMNS = [
    "credit_id",
    "project_name",
    "issuer_name",
    "location",
    "methodology",
    "standard",
    "vintage",
    "quantity",
    "expiry",
    "minter",
    "attester",
    "created_at",
    "retired_at",
    "retirer",
    "usable",
]

LISTING_COLUMNS = [
    "listing_id",
    "asset_id",
    "asker",
    "price",
    "expiry",
    "created_at",
    "status",
    "bidder",
    "fulfilled_at",
    "active",
]


def _to_datetime(series: pd.Series) -> pd.Series:
    """Unix seconds to UTC datetimes, with 0 (unset) becoming NaT."""
    seconds = pd.to_numeric(series, errors="coerce").astype("float64")
    return pd.to_datetime(seconds.where(seconds > 0), unit="s", utc=True, errors="coerce")


def credits_dataframe(registrar: Registrar) -> pd.DataFrame:
    """
    Build a DataFrame with one row per issued credit, retired ones included.

    Args:
        registrar: Registrar to report on

    Returns:
        DataFrame with CREDIT_COLUMNS, times as UTC datetimes
    """
    rows = []
    for metadata in registrar.iter_credits():
        certification = metadata.certification
        rows.append(
            {
                "credit_id": metadata.credit_id,
                "project_name": certification.project_name,
                "issuer_name": certification.issuer_name,
                "location": certification.location,
                "methodology": certification.methodology,
                "standard": str(certification.standard),
                "vintage": certification.vintage,
                "quantity": certification.quantity,
                "expiry": certification.expiry,
                "minter": metadata.minter,
                "attester": metadata.attester,
                "created_at": metadata.created_at,
                "retired_at": metadata.retired_at,
                "retirer": metadata.retirer,
                "usable": registrar.is_usable_credit(metadata.credit_id),
            }
        )

    df = pd.DataFrame(rows, columns=CREDIT_COLUMNS)
    for column in ("expiry", "created_at", "retired_at"):
        df[column] = _to_datetime(df[column])
    return df


def listings_dataframe(marketplace: Marketplace) -> pd.DataFrame:
    """Build a DataFrame with one row per listing, terminated ones included."""
    rows = [
        {
            "listing_id": listing.listing_id,
            "asset_id": listing.asset_id,
            "asker": listing.asker,
            "price": listing.price,
            "expiry": listing.expiry,
            "created_at": listing.created_at,
            "status": listing.status.value,
            "bidder": listing.bidder,
            "fulfilled_at": listing.fulfilled_at or 0,
            "active": marketplace.is_listing_active(listing.listing_id),
        }
        for listing in marketplace.iter_listings()
    ]

    df = pd.DataFrame(rows, columns=LISTING_COLUMNS)
    for column in ("expiry", "created_at", "fulfilled_at"):
        df[column] = _to_datetime(df[column])
    return df


def market_statistics(marketplace: Marketplace) -> Dict[str, Any]:
    """Get trading statistics"""
    df = listings_dataframe(marketplace)
    sold = df[df["status"] == "sold"]

    total_volume = int(sold["price"].sum()) if not sold.empty else 0
    return {
        "total_listings": len(df),
        "active_listings": int(df["active"].sum()) if not df.empty else 0,
        "sold_listings": len(sold),
        "cancelled_listings": int((df["status"] == "cancelled").sum()) if not df.empty else 0,
        "total_volume": total_volume,
        "average_sale_price": (
            total_volume / len(sold) if not sold.empty else None
        ),
    }
