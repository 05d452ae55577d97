# pack descriptor and card generator.
# A Pack is what the storefront sells; the CardGenerator turns one into cards
# according to the pack's rarity table and guarantees.
import random
import uuid
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from pack_components.card_utils.card import Card, Finish, Rarity
from pack_components.card_utils.rarity_table import RarityTable
from pack_components.errors import ConfigurationError
from pack_logs.loggers import pack_logger


@dataclass(frozen=True)
class Guarantee:
    rarity: Rarity
    count: int


@dataclass(frozen=True)
class Pack:
    id: str
    name: str
    price: int
    card_count: int
    guarantees: Tuple[Guarantee, ...] = ()
    description: str = ""
    image: str = ""
    is_available: bool = True

    @property
    def guaranteed_total(self) -> int:
        return sum(g.count for g in self.guarantees)

    def validate(self) -> None:
        if self.card_count < 0:
            raise ConfigurationError(f"{self.id}: card_count must not be negative")
        if self.price < 0:
            raise ConfigurationError(f"{self.id}: price must not be negative")
        for g in self.guarantees:
            if g.count < 0:
                raise ConfigurationError(f"{self.id}: negative guarantee for {g.rarity.value}")
        # never truncate guarantees to fit
        if self.card_count < self.guaranteed_total:
            raise ConfigurationError(
                f"{self.id}: guarantees need {self.guaranteed_total} cards "
                f"but the pack only holds {self.card_count}"
            )

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "cardCount": self.card_count,
            "guarantees": [{"rarity": g.rarity.value, "count": g.count} for g in self.guarantees],
            "description": self.description,
            "image": self.image,
            "isAvailable": self.is_available,
        }


# Non-normal finishes are rare and independent of rarity.
DEFAULT_FINISH_TABLE: Tuple[Tuple[Finish, float], ...] = (
    (Finish.HOLOGRAPHIC, 0.02),
    (Finish.FOIL, 0.06),
    (Finish.REVERSE_FOIL, 0.04),
)


class CardGenerator:
    """Draws the cards for a pack.

    Guarantees are drawn first at their exact rarity, then the remaining slots
    are filled by a weighted draw over the pack's rarity table. Pass a seeded
    ``random.Random`` as ``rng`` for reproducible packs (ids included).
    """

    def __init__(
        self,
        table: RarityTable,
        rng: Optional[random.Random] = None,
        finish_table: Sequence[Tuple[Finish, float]] = DEFAULT_FINISH_TABLE,
    ):
        if sum(p for _, p in finish_table) > 1:
            raise ConfigurationError("Finish probabilities add up to more than 1")
        self.table = table
        self.rng = rng or random.Random()
        self.finish_table = tuple(finish_table)

    def generate(self, pack: Pack) -> List[Card]:
        pack.validate()
        # unknown packs fail here, before anything is drawn
        self.table.weights_for(pack.id)

        issued: Set[str] = set()
        cards: List[Card] = []

        for guarantee in pack.guarantees:
            if guarantee.count and not self.table.catalog_for(pack.id, guarantee.rarity):
                raise ConfigurationError(
                    f"{pack.id}: guarantees {guarantee.count} {guarantee.rarity.value} "
                    f"but that catalog is empty"
                )
            if guarantee.count:
                self.table.value_range_for(pack.id, guarantee.rarity)
        for guarantee in pack.guarantees:
            for _ in range(guarantee.count):
                cards.append(self._draw(pack, guarantee.rarity, issued))

        remaining = pack.card_count - len(cards)
        if remaining:
            drawable = self.table.drawable_weights(pack.id)
            if not drawable:
                raise ConfigurationError(f"{pack.id}: no drawable rarity for {remaining} open slots")
            for _ in range(remaining):
                cards.append(self._draw(pack, self._weighted_choice(drawable), issued))

        pack_logger.debug(
            "pack_generated",
            pack_id=pack.id,
            card_count=len(cards),
            rarities={r.value: n for r, n in count_by_rarity(cards).items()},
        )
        return cards

    def _weighted_choice(self, weights: Mapping[Rarity, float]) -> Rarity:
        """Walk the cumulative distribution with one uniform roll."""
        total = sum(weights.values())
        roll = self.rng.random() * total
        cumulative = 0.0
        for rarity, weight in weights.items():
            cumulative += weight
            if roll < cumulative:
                return rarity
        # Fallback in case of rounding errors
        return list(weights)[-1]

    def _roll_finish(self) -> Finish:
        roll = self.rng.random()
        cumulative = 0.0
        for finish, probability in self.finish_table:
            cumulative += probability
            if roll < cumulative:
                return finish
        return Finish.NORMAL

    def _new_id(self, issued: Set[str]) -> str:
        while True:
            card_id = str(uuid.UUID(int=self.rng.getrandbits(128), version=4))
            if card_id not in issued:
                issued.add(card_id)
                return card_id

    def _draw(self, pack: Pack, rarity: Rarity, issued: Set[str]) -> Card:
        entry = self.rng.choice(self.table.catalog_for(pack.id, rarity))
        low, high = self.table.value_range_for(pack.id, rarity)
        return Card(
            id=self._new_id(issued),
            name=entry.name,
            image=entry.image,
            rarity=rarity,
            value=self.rng.randint(low, high),
            finish=self._roll_finish(),
            pack_id=pack.id,
        )


def count_by_rarity(cards: Sequence[Card]) -> Dict[Rarity, int]:
    counts: Dict[Rarity, int] = {}
    for card in cards:
        counts[card.rarity] = counts.get(card.rarity, 0) + 1
    return counts
