"""Named failure conditions raised by the registrar, marketplace and ledgers.

Every condition aborts the operation that raised it; the category bases let
callers (and the HTTP layer) discriminate by kind without listing every
concrete class.
"""


class CreditExchangeError(RuntimeError):
    """Base error for the credit exchange."""


class AuthorizationError(CreditExchangeError):
    """Caller lacks the required relationship to the target resource."""


class AttestationError(CreditExchangeError):
    """Attestation or validator input was rejected."""


class StateError(CreditExchangeError):
    """Resource is not in the state the operation requires."""


class PaymentError(CreditExchangeError):
    """Value transfer could not be settled."""


# Authorization


class NotContractOwnerError(AuthorizationError):
    """Caller is not the registrar owner."""


class UnauthorizedError(AuthorizationError):
    """Caller is not the owner, approved delegate or operator (or not the asker)."""


class UnauthorizedRetireError(AuthorizationError):
    """Caller may not retire this credit."""


class TransferUnauthorizedError(AuthorizationError):
    """Caller may not move this asset."""


class MinterOnlyError(AuthorizationError):
    """Only the configured minter may mint or burn."""


# Attestation


class InvalidSignatureError(AttestationError):
    """Signature is malformed, unrecoverable, or not from an enabled validator."""


class SignatureReplayedError(AttestationError):
    """Attestation digest has already been consumed."""


class InvalidValidatorError(AttestationError):
    """Validator identity is the null identity."""


# State


class AlreadyIssuedError(StateError):
    """A credit already exists for this certification and salt."""


class UnusableCreditError(StateError):
    """Credit is not issued, is expired, or is already retired."""


class NotActiveError(StateError):
    """Listing is unknown, terminated or expired."""


class AlreadyFulfilledError(StateError):
    """Listing has already been sold or cancelled."""


class ReentrantCallError(StateError):
    """A guarded entry point was re-entered while already executing."""


class TokenNotFoundError(StateError):
    """Asset does not exist on the ledger."""


class TokenAlreadyMintedError(StateError):
    """Asset id is already in use on the ledger."""


class ReceiverRejectedError(StateError):
    """Recipient did not acknowledge the asset transfer."""


# Payment


class InsufficientPaymentError(PaymentError):
    """Tendered amount is below the listing price."""


class RefundFailedError(PaymentError):
    """Refund of the overpaid amount was rejected by the payer."""


class PaymentRejectedError(PaymentError):
    """Payment endpoint refused the transfer."""


class InsufficientBalanceError(PaymentError):
    """Payer balance does not cover the transfer."""
