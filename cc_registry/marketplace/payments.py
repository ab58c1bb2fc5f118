from typing import Callable

from cc_registry.core.chain import Chain
from cc_registry.core.errors import InsufficientBalanceError, PaymentRejectedError
from cc_registry.core.services import check_uint256, to_address
from cc_registry.logging_config import logger

# (payer, amount) -> accepted
PaymentEndpoint = Callable[[str, int], bool]


class PaymentLedger:
    """Native value balances used to settle marketplace purchases.

    Addresses with a registered endpoint behave like programmable accounts:
    the endpoint is called on every incoming payment and may reject it.
    """

    def __init__(self, chain: Chain) -> None:
        self.chain = chain
        self._balances: dict[str, int] = {}
        self._endpoints: dict[str, PaymentEndpoint] = {}

    def register_endpoint(self, address: str, endpoint: PaymentEndpoint) -> None:
        self._endpoints[to_address(address)] = endpoint

    def unregister_endpoint(self, address: str) -> None:
        self._endpoints.pop(to_address(address), None)

    def balance_of(self, address: str) -> int:
        return self._balances.get(to_address(address), 0)

    def deposit(self, address: str, amount: int) -> int:
        """Credit new value to an account, returning its balance."""
        address = to_address(address)
        check_uint256(amount, "amount")
        self.chain.write(self._balances, address, self._balances.get(address, 0) + amount)
        return self._balances[address]

    def transfer(self, from_: str, to: str, amount: int) -> None:
        """
        Move `amount` from one account to another.

        The recipient's endpoint, if any, runs after the balances are updated
        and inside the same transaction, so a rejection leaves no trace.

        Args:
            from_ (str): Paying account
            to (str): Receiving account
            amount (int): Amount to move

        Raises:
            InsufficientBalanceError: If the payer cannot cover the amount
            PaymentRejectedError: If the recipient's endpoint refuses it
        """
        from_ = to_address(from_)
        to = to_address(to)
        check_uint256(amount, "amount")

        balance = self._balances.get(from_, 0)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{from_} holds {balance}, cannot transfer {amount}"
            )

        with self.chain.transaction():
            self.chain.write(self._balances, from_, balance - amount)
            self.chain.write(self._balances, to, self._balances.get(to, 0) + amount)

            endpoint = self._endpoints.get(to)
            if endpoint is not None and not endpoint(from_, amount):
                logger.warning(f"Payment of {amount} from {from_} rejected by {to}")
                raise PaymentRejectedError(f"{to} rejected a payment of {amount}")

