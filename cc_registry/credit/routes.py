from fastapi import APIRouter, Depends, HTTPException

from cc_registry.core.services import create_credit_id, to_hash32
from cc_registry.credit.schemas import (
    CreditIdRead,
    CreditIdRequest,
    CreditMetadata,
    CreditStatusRead,
    IssuanceContextRead,
)
from cc_registry.exchange import Exchange, get_exchange

# Router initialisation
router = APIRouter(tags=["Credits"])


def _parse_credit_id(credit_id: str) -> str:
    try:
        return to_hash32(credit_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid credit id: {str(e)}")


@router.get("/context", response_model=IssuanceContextRead)
def get_issuance_context(exchange: Exchange = Depends(get_exchange)):
    """Return what an off-chain validator needs to build an attestation digest."""
    return IssuanceContextRead(
        issuance_context=exchange.registrar.ISSUANCE_CONTEXT,
        registrar=exchange.registrar.address,
        chain_id=exchange.chain.chain_id,
    )


@router.post("/id", response_model=CreditIdRead)
def predict_credit_id(request: CreditIdRequest):
    """Compute the id a certification will be issued under for a given salt."""
    try:
        salt = to_hash32(request.salt)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid salt: {str(e)}")
    return CreditIdRead(credit_id=create_credit_id(request.certification, salt))


@router.get("/validators/{address}")
def get_validator(address: str, exchange: Exchange = Depends(get_exchange)):
    try:
        enabled = exchange.registrar.is_validator(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"address": address, "enabled": enabled}


@router.get("/{credit_id}", response_model=CreditMetadata)
def get_credit(credit_id: str, exchange: Exchange = Depends(get_exchange)):
    metadata = exchange.registrar.get_metadata(_parse_credit_id(credit_id))
    if metadata is None:
        raise HTTPException(status_code=404, detail=f"Credit {credit_id} not found")
    return metadata


@router.get("/{credit_id}/status", response_model=CreditStatusRead)
def get_credit_status(credit_id: str, exchange: Exchange = Depends(get_exchange)):
    credit_id = _parse_credit_id(credit_id)
    registrar = exchange.registrar
    return CreditStatusRead(
        credit_id=credit_id,
        issued=registrar.is_credit_issued(credit_id),
        expired=registrar.is_credit_expired(credit_id),
        retired=registrar.is_credit_retired(credit_id),
        usable=registrar.is_usable_credit(credit_id),
    )
