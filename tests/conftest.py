import os

# module loggers pick their mode at import time
os.environ.setdefault("ENV", "test")

from datetime import datetime, timedelta, timezone

import pytest

from pack_components.card_utils.card import Card, Rarity
from pack_components.card_utils.pack import Guarantee, Pack
from pack_components.card_utils.rarity_table import PackRarityTable, RarityTable
from pack_components.collection import CollectionManager
from pack_components.config import EngineConfig
from pack_components.ledger import CreditLedger
from pack_components.utils.repositories import InMemoryCollectionRepository, InMemoryLedgerRepository

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_card(card_id, rarity=Rarity.COMMON, value=10, name=None):
    return Card(id=card_id, name=name or f"Card {card_id}", rarity=Rarity(rarity), value=value)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_table():
    return PackRarityTable.from_dict({
        "rarity_weights": {"common": 60, "uncommon": 30, "rare": 10},
        "value_ranges": {
            "common": [1, 5],
            "uncommon": [10, 20],
            "rare": [50, 60],
            "mythic": [500, 600],
        },
        "catalog": {
            "common": ["Goblin", "Rat"],
            "uncommon": ["Knight"],
            "rare": ["Dragon"],
            "mythic": [{"name": "Phoenix", "image": "/images/phoenix.jpg"}],
        },
    }, pack_id="test-pack")


@pytest.fixture
def rarity_table(test_table):
    return RarityTable({"test-pack": test_table})


@pytest.fixture
def test_pack():
    return Pack(
        id="test-pack",
        name="Test Pack",
        price=100,
        card_count=5,
        guarantees=(Guarantee(Rarity.UNCOMMON, 2),),
    )


@pytest.fixture
def ledger(clock):
    return CreditLedger(InMemoryLedgerRepository(balance=100), clock=clock)


@pytest.fixture
def manager(ledger, clock):
    return CollectionManager(InMemoryCollectionRepository(), ledger, config=EngineConfig(), clock=clock)
