from dataclasses import dataclass

from cc_registry.asset.ledger import AssetLedger
from cc_registry.core.chain import Chain
from cc_registry.core.services import derive_address
from cc_registry.credit.registrar import Registrar
from cc_registry.credit.signing import SignatureRecoverer
from cc_registry.logging_config import logger
from cc_registry.marketplace.payments import PaymentLedger
from cc_registry.marketplace.services import Marketplace
from cc_registry.settings import Settings, settings


@dataclass
class Exchange:
    """One deployment of the credit exchange: every component shares the
    same chain, so one transaction journal covers all of them."""

    chain: Chain
    ledger: AssetLedger
    payments: PaymentLedger
    registrar: Registrar
    marketplace: Marketplace

    @classmethod
    def deploy(
        cls,
        owner: str | None = None,
        config: Settings = settings,
        chain: Chain | None = None,
        recoverer: SignatureRecoverer | None = None,
    ) -> "Exchange":
        chain = chain or Chain(
            chain_id=config.CHAIN_ID,
            timestamp=config.GENESIS_TIMESTAMP,
            block_time=config.BLOCK_TIME_SECONDS,
            automine=config.AUTOMINE,
        )
        registrar_address = derive_address("registrar")

        ledger = AssetLedger(
            chain,
            minter=registrar_address,
            name=config.ASSET_NAME,
            symbol=config.ASSET_SYMBOL,
        )
        payments = PaymentLedger(chain)
        registrar = Registrar(
            chain,
            ledger,
            owner=owner or config.REGISTRY_OWNER,
            address=registrar_address,
            recoverer=recoverer,
        )
        marketplace = Marketplace(chain, ledger, payments)

        logger.info(
            f"Exchange deployed on chain {chain.chain_id}: registrar {registrar.address}, "
            f"marketplace {marketplace.address}"
        )
        return cls(
            chain=chain,
            ledger=ledger,
            payments=payments,
            registrar=registrar,
            marketplace=marketplace,
        )


_exchange: Exchange | None = None


def get_exchange() -> Exchange:
    """Process-wide exchange used by the HTTP API."""
    global _exchange
    if _exchange is None:
        _exchange = Exchange.deploy()
    return _exchange
