import pytest

from cc_registry import exchange as exchange_module
from cc_registry.core.errors import UnauthorizedRetireError
from cc_registry.exchange import Exchange, get_exchange
from cc_registry.settings import settings


class TestExchange:
    def test_deploy_wires_components(self, exchange, owner):
        assert exchange.ledger.minter == exchange.registrar.address
        assert exchange.registrar.owner == owner
        assert exchange.marketplace.ledger is exchange.ledger
        assert exchange.marketplace.payments is exchange.payments
        addresses = {exchange.registrar.address, exchange.marketplace.address, exchange.ledger.address}
        assert len(addresses) == 3

    def test_deploy_from_settings(self):
        deployed = Exchange.deploy()
        assert deployed.chain.chain_id == settings.CHAIN_ID
        assert deployed.chain.now == settings.GENESIS_TIMESTAMP
        assert deployed.ledger.symbol == settings.ASSET_SYMBOL

    def test_get_exchange_is_shared(self, monkeypatch):
        monkeypatch.setattr(exchange_module, "_exchange", None)
        assert get_exchange() is get_exchange()

    def test_failure_unwinds_every_component(self, exchange, alice, bob, fake_listing):
        """A failure late in an operation leaves no partial state anywhere."""
        exchange.payments.deposit(bob, 500)
        asset_id = exchange.marketplace.get_listing(fake_listing).asset_id
        events_before = len(exchange.chain.events)

        with pytest.raises(UnauthorizedRetireError):
            with exchange.chain.transaction():
                exchange.marketplace.fulfill(fake_listing, sender=bob, value=100)
                exchange.registrar.retire(asset_id, sender=alice)

        assert exchange.ledger.owner_of(asset_id) == exchange.marketplace.address
        assert exchange.payments.balance_of(bob) == 500
        assert exchange.marketplace.is_listing_active(fake_listing)
        assert len(exchange.chain.events) == events_before
