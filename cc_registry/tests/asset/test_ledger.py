import pytest

from cc_registry.asset.ledger import RECEIVER_ACK
from cc_registry.core.errors import (
    MinterOnlyError,
    ReceiverRejectedError,
    TokenAlreadyMintedError,
    TokenNotFoundError,
    TransferUnauthorizedError,
)
from cc_registry.core.models.base import EventTypes
from cc_registry.core.services import ZERO_ADDRESS, to_hash32

TOKEN = to_hash32(42)


@pytest.fixture()
def ledger(exchange):
    return exchange.ledger


@pytest.fixture()
def minted(ledger, alice):
    ledger.mint(alice, TOKEN, sender=ledger.minter)
    return TOKEN


class TestMintAndBurn:
    def test_mint(self, ledger, alice, minted):
        assert ledger.exists(minted)
        assert ledger.owner_of(minted) == alice
        assert ledger.balance_of(alice) == 1

        event = ledger.chain.events.last(EventTypes.TRANSFER)
        assert event.attributes["from_"] == ZERO_ADDRESS
        assert event.attributes["to"] == alice

    def test_only_minter_mints(self, ledger, alice):
        with pytest.raises(MinterOnlyError):
            ledger.mint(alice, TOKEN, sender=alice)

    def test_token_ids_are_unique(self, ledger, bob, minted):
        with pytest.raises(TokenAlreadyMintedError):
            ledger.mint(bob, minted, sender=ledger.minter)

    def test_burn(self, ledger, alice, minted):
        ledger.burn(minted, sender=ledger.minter)
        assert not ledger.exists(minted)
        assert ledger.balance_of(alice) == 0
        with pytest.raises(TokenNotFoundError):
            ledger.owner_of(minted)

    def test_only_minter_burns(self, ledger, alice, minted):
        with pytest.raises(MinterOnlyError):
            ledger.burn(minted, sender=alice)


class TestDelegation:
    def test_approved_delegate_transfers_once(self, ledger, alice, bob, carol, minted):
        ledger.approve(bob, minted, sender=alice)
        assert ledger.get_approved(minted) == bob
        assert ledger.is_authorized(alice, bob, minted)

        ledger.transfer(alice, carol, minted, sender=bob)

        assert ledger.owner_of(minted) == carol
        assert ledger.get_approved(minted) is None

    def test_operator_transfers(self, ledger, alice, bob, carol, minted):
        ledger.set_approval_for_all(bob, True, sender=alice)
        assert ledger.is_approved_for_all(alice, bob)

        ledger.transfer(alice, carol, minted, sender=bob)
        assert ledger.owner_of(minted) == carol

    def test_revoked_operator_cannot_transfer(self, ledger, alice, bob, minted):
        ledger.set_approval_for_all(bob, True, sender=alice)
        ledger.set_approval_for_all(bob, False, sender=alice)

        with pytest.raises(TransferUnauthorizedError):
            ledger.transfer(alice, bob, minted, sender=bob)

    def test_stranger_cannot_transfer(self, ledger, alice, bob, minted):
        with pytest.raises(TransferUnauthorizedError):
            ledger.transfer(alice, bob, minted, sender=bob)

    def test_wrong_from_rejected(self, ledger, alice, bob, minted):
        with pytest.raises(TransferUnauthorizedError):
            ledger.transfer(bob, alice, minted, sender=bob)

    def test_cannot_approve_owner(self, ledger, alice, minted):
        with pytest.raises(ValueError):
            ledger.approve(alice, minted, sender=alice)

    def test_cannot_transfer_to_zero(self, ledger, alice, minted):
        with pytest.raises(ValueError):
            ledger.transfer(alice, ZERO_ADDRESS, minted, sender=alice)


class TestReceivers:
    def test_acknowledging_receiver(self, ledger, alice, bob, minted):
        received = []

        def hook(operator, from_, token_id, data):
            received.append((operator, from_, token_id, data))
            return bytes.fromhex(RECEIVER_ACK[2:])

        ledger.register_receiver(bob, hook)
        ledger.transfer(alice, bob, minted, sender=alice, data=b"memo")

        assert ledger.owner_of(minted) == bob
        assert received == [(alice, alice, minted, b"memo")]

    def test_rejecting_receiver_unwinds_transfer(self, ledger, alice, bob, minted):
        ledger.register_receiver(bob, lambda *args: "0xdeadbeef")
        events_before = len(ledger.chain.events)

        with pytest.raises(ReceiverRejectedError):
            ledger.transfer(alice, bob, minted, sender=alice)

        assert ledger.owner_of(minted) == alice
        assert ledger.balance_of(alice) == 1
        assert ledger.balance_of(bob) == 0
        assert len(ledger.chain.events) == events_before

    def test_unregistered_receiver_is_plain_account(self, ledger, alice, bob, minted):
        ledger.register_receiver(bob, lambda *args: None)
        ledger.unregister_receiver(bob)

        ledger.transfer(alice, bob, minted, sender=alice)
        assert ledger.owner_of(minted) == bob

    def test_mint_checks_receiver(self, ledger, bob):
        ledger.register_receiver(bob, lambda *args: None)

        with pytest.raises(ReceiverRejectedError):
            ledger.mint(bob, TOKEN, sender=ledger.minter)
        assert not ledger.exists(TOKEN)
