import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from .core.error_handling import (
    credit_exchange_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.errors import CreditExchangeError
from .core.models.base import LoggingLevelRequest
from .credit.routes import router as credit_router
from .logging_config import logger, set_logger_and_children_level
from .marketplace.routes import router as listing_router
from .settings import settings

tags_metadata = [
    {
        "name": "Credits",
        "description": """Certification-backed credits issued by the Registrar on the strength of
                        validator attestations, and their retirement status.""",
    },
    {
        "name": "Listings",
        "description": "Escrowed fixed-price listings of credits on the Marketplace.",
    },
]

app = FastAPI(
    title="Carbon Credit Registry API",
    description="Read access to credit issuance, retirement and marketplace state.",
    version="1.0.0",
    openapi_tags=tags_metadata,
)

app.add_exception_handler(CreditExchangeError, credit_exchange_exception_handler)  # type: ignore
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(credit_router, prefix="/credits")
app.include_router(listing_router, prefix="/listings")


@app.get("/")
async def root():
    return {
        "message": "Carbon Credit Registry API",
        "version": "1.0.0",
        "endpoints": {
            "issuance_context": "GET /credits/context",
            "predict_credit_id": "POST /credits/id",
            "credit": "GET /credits/{credit_id}",
            "credit_status": "GET /credits/{credit_id}/status",
            "predict_listing_id": "POST /listings/id",
            "listing": "GET /listings/{listing_id}",
            "listing_status": "GET /listings/{listing_id}/status",
            "statistics": "GET /listings/statistics",
        },
    }


@app.post("/log_level")
async def change_log_level(request: LoggingLevelRequest):
    level = getattr(logging, request.level.value)
    set_logger_and_children_level(logger, level)
    logger.info(f"Log level changed to {request.level.value}")
    return {
        "message": f"Log level changed to {request.level.value}",
        "effective_level": logging.getLevelName(logger.getEffectiveLevel()),
    }


def main():
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
