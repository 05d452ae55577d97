import random
from dataclasses import replace

import pytest

from pack_components.card_utils.pack_utils import load_pack_directory
from pack_components.config import EngineConfig
from pack_components.errors import InsufficientCreditsError, PackNotFoundError, PackUnavailableError
from pack_components.reveal import RevealState
from pack_components.storefront import PurchaseResult, Storefront
from pack_components.transaction import PaymentMethod, TransactionType
from pack_components.utils.repositories import InMemoryCollectionRepository, InMemoryLedgerRepository


@pytest.fixture
def storefront(clock):
    return Storefront.build(
        InMemoryCollectionRepository(),
        InMemoryLedgerRepository(balance=1500),
        config=EngineConfig(),
        rng=random.Random(21),
        clock=clock,
    )


def test_packs_are_listed_by_price(storefront):
    prices = [p.price for p in storefront.list_packs()]
    assert prices == sorted(prices)
    assert storefront.list_packs()[0].id == "starter-pack"


def test_unavailable_packs_are_hidden_and_not_sold(clock):
    packs, table = load_pack_directory()
    packs["mythic-pack"] = replace(packs["mythic-pack"], is_available=False)
    storefront = Storefront.build(
        InMemoryCollectionRepository(), InMemoryLedgerRepository(balance=5000),
        packs=packs, table=table, clock=clock,
    )
    assert "mythic-pack" not in [p.id for p in storefront.list_packs()]
    assert "mythic-pack" in [p.id for p in storefront.list_packs(available_only=False)]
    with pytest.raises(PackUnavailableError):
        storefront.purchase_pack("mythic-pack")
    assert storefront.ledger.balance == 5000


def test_purchase_with_credits_debits_the_price(storefront):
    purchase = storefront.purchase_pack("starter-pack")
    assert len(purchase.cards) == 5
    assert storefront.ledger.balance == 1400
    assert purchase.transaction.type is TransactionType.PURCHASE
    assert purchase.transaction.details["packId"] == "starter-pack"


def test_purchase_with_paypal_only_records_it(storefront):
    purchase = storefront.purchase_pack("premium-pack", PaymentMethod.PAYPAL)
    assert storefront.ledger.balance == 1500
    assert purchase.transaction.amount == 500
    assert storefront.ledger.transactions() == [purchase.transaction]


def test_unaffordable_purchase_changes_nothing(storefront):
    with pytest.raises(InsufficientCreditsError):
        storefront.purchase_pack("mythic-pack")
    assert storefront.ledger.balance == 1500
    assert storefront.ledger.transactions() == []


def test_unknown_pack(storefront):
    with pytest.raises(PackNotFoundError):
        storefront.purchase_pack("no-such-pack")


def test_full_purchase_reveal_commit_flow(storefront):
    purchase = storefront.purchase_pack("adventure-pack")
    session = storefront.open_reveal(purchase)
    assert session.session_id == purchase.transaction.id
    assert session.state is RevealState.CLOSED

    session = session.start().skip_to_rare()
    committed = storefront.complete_reveal(session)

    assert {c.id for c in committed} == {c.id for c in purchase.cards}
    assert len(storefront.collection.cards()) == 8
    # a retried commit of the same purchase is ignored
    assert storefront.complete_reveal(session) == ()
    assert len(storefront.collection.cards()) == 8


def test_complete_reveal_of_unopened_session(storefront):
    session = storefront.open_reveal(storefront.purchase_pack("starter-pack"))
    assert len(storefront.complete_reveal(session)) == 5


def test_purchase_payload_matches_the_remote_shape(storefront):
    purchase = storefront.purchase_pack("starter-pack")
    payload = purchase.to_dict()
    assert payload["success"] is True
    assert payload["packId"] == "starter-pack"
    assert set(payload["cards"][0]) >= {"id", "name", "image", "rarity", "value", "finish", "expiryDate"}
    assert PurchaseResult.from_dict(payload) == purchase


def test_add_credits(storefront):
    transaction = storefront.add_credits(250)
    assert storefront.ledger.balance == 1750
    assert transaction.type is TransactionType.CREDIT_ADD


def test_free_pack_with_credits_is_recorded_not_debited(clock):
    packs, table = load_pack_directory()
    packs["starter-pack"] = replace(packs["starter-pack"], price=0)
    storefront = Storefront.build(
        InMemoryCollectionRepository(), InMemoryLedgerRepository(balance=0),
        packs=packs, table=table, clock=clock,
    )

    purchase = storefront.purchase_pack("starter-pack", PaymentMethod.CREDITS)

    assert len(purchase.cards) == 5
    assert purchase.transaction.amount == 0
    assert storefront.ledger.balance == 0
    assert storefront.ledger.transactions() == [purchase.transaction]


def test_finish_reveal_returns_the_completed_session(storefront):
    session = storefront.open_reveal(storefront.purchase_pack("starter-pack"))
    session, committed = storefront.finish_reveal(session)
    assert session.state is RevealState.COMPLETE
    assert len(committed) == 5
    assert storefront.finish_reveal(session) == (session, ())
