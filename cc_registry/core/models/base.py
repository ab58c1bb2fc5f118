import enum
from enum import Enum

from pydantic import BaseModel


class CreditStandard(int, Enum):
    """Certification standard a credit was verified under.

    The ordinal is part of the canonical certification encoding, so members
    must never be reordered.
    """

    VERRA = 0
    GOLD_STANDARD = 1
    CLIMATE_ACTION_RESERVE = 2
    AMERICAN_CARBON_REGISTRY = 3
    PLAN_VIVO = 4
    PURO_EARTH = 5

    def __str__(self):
        return self.name.lower()


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"


class EventTypes(str, Enum):
    ISSUED = "Issued"
    RETIRED = "Retired"
    VALIDATOR_ADDED = "ValidatorAdded"
    VALIDATOR_REMOVED = "ValidatorRemoved"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
    LISTED = "Listed"
    LISTING_UPDATED = "ListingUpdated"
    LISTING_CANCELLED = "ListingCancelled"
    EXPIRED = "Expired"
    FULFILLED = "Fulfilled"
    PROCEEDS_WITHDRAWN = "ProceedsWithdrawn"
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    APPROVAL_FOR_ALL = "ApprovalForAll"


class logging_levels(str, enum.Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingLevelRequest(BaseModel):
    level: logging_levels
