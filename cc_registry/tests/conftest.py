from typing import Any, Callable, Generator

import pytest
from starlette.testclient import TestClient

from cc_registry.core.chain import Chain
from cc_registry.core.models.base import CreditStandard
from cc_registry.core.services import to_address
from cc_registry.credit.schemas import Certification
from cc_registry.credit.signing import address_of, sign_digest
from cc_registry.exchange import Exchange, get_exchange
from cc_registry.main import app

GENESIS_TIMESTAMP = 1_700_000_000
CHAIN_ID = 31337

VALIDATOR_KEY = b"\x01" * 32
OTHER_KEY = b"\x02" * 32

OWNER = to_address("0x00000000000000000000000000000000000000a1")
ALICE = to_address("0x00000000000000000000000000000000000000b0")
BOB = to_address("0x00000000000000000000000000000000000000b1")
CAROL = to_address("0x00000000000000000000000000000000000000b2")


@pytest.fixture()
def chain() -> Chain:
    return Chain(
        chain_id=CHAIN_ID,
        timestamp=GENESIS_TIMESTAMP,
        block_time=12,
        automine=False,
    )


@pytest.fixture()
def exchange(chain: Chain) -> Exchange:
    return Exchange.deploy(owner=OWNER, chain=chain)


@pytest.fixture()
def owner() -> str:
    return OWNER


@pytest.fixture()
def alice() -> str:
    return ALICE


@pytest.fixture()
def bob() -> str:
    return BOB


@pytest.fixture()
def carol() -> str:
    return CAROL


@pytest.fixture()
def validator(exchange: Exchange) -> str:
    """Address of an enabled validator holding VALIDATOR_KEY."""
    address = address_of(VALIDATOR_KEY)
    exchange.registrar.add_validator(address, sender=OWNER)
    return address


@pytest.fixture()
def fake_certification() -> Certification:
    return Certification(
        project_name="Kasigau Corridor REDD+",
        issuer_name="Wildlife Works",
        location="Kenya",
        methodology="VM0009",
        quantity=1000,
        vintage=2021,
        expiry=0,
        standard=CreditStandard.VERRA,
    )


@pytest.fixture()
def sign_issuance(exchange: Exchange) -> Callable[..., bytes]:
    """Sign the issuance digest of a credit id and proof with a validator key."""

    def _sign(credit_id: str, proof: bytes = b"proof", key: bytes = VALIDATOR_KEY) -> bytes:
        return sign_digest(key, exchange.registrar.issuance_digest(credit_id, proof))

    return _sign


@pytest.fixture()
def issue_credit(
    exchange: Exchange,
    validator: str,
    fake_certification: Certification,
    sign_issuance: Callable[..., bytes],
) -> Any:
    def _issue_credit(
        certification: Certification | None = None,
        salt: int = 1,
        recipient: str | None = ALICE,
        proof: bytes = b"proof",
        sender: str = ALICE,
    ) -> str:
        certification = certification or fake_certification
        credit_id = exchange.registrar.get_credit_id(certification, salt)
        return exchange.registrar.issue(
            certification,
            recipient,
            salt,
            proof,
            sign_issuance(credit_id, proof),
            sender=sender,
        )

    return _issue_credit


@pytest.fixture()
def fake_issued_credit(issue_credit: Any) -> str:
    """A usable credit owned by ALICE."""
    return issue_credit()


@pytest.fixture()
def fake_listing(exchange: Exchange, fake_issued_credit: str) -> str:
    """ALICE's credit listed at a price of 100 with no expiry."""
    exchange.ledger.set_approval_for_all(exchange.marketplace.address, True, sender=ALICE)
    return exchange.marketplace.list(fake_issued_credit, 100, 0, 1, sender=ALICE)


@pytest.fixture()
def api_client(exchange: Exchange) -> Generator[TestClient, None, None]:
    """API Client for testing routes"""

    def get_exchange_override():
        return exchange

    app.dependency_overrides[get_exchange] = get_exchange_override

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
