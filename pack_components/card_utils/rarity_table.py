"""Static weighted-probability definitions per pack type.

Each pack id maps to a :class:`PackRarityTable` holding a weight per rarity,
an inclusive credit value range per rarity and the catalog of card names a
card of that rarity can be drawn from. Weights do not need to sum to 1; the
generator normalises them.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from pack_components.card_utils.card import Rarity
from pack_components.errors import ConfigurationError, PackNotFoundError


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    image: str = ""


@dataclass(frozen=True)
class PackRarityTable:
    weights: Mapping[Rarity, float]
    value_ranges: Mapping[Rarity, Tuple[int, int]]
    catalog: Mapping[Rarity, Tuple[CatalogEntry, ...]] = field(default_factory=dict)

    def validate(self, pack_id: str) -> None:
        for rarity, weight in self.weights.items():
            if weight < 0:
                raise ConfigurationError(f"{pack_id}: negative weight {weight} for {rarity.value}")

        for rarity, (low, high) in self.value_ranges.items():
            if low < 0 or high < low:
                raise ConfigurationError(f"{pack_id}: bad value range [{low}, {high}] for {rarity.value}")

        # anything the weighted fill can draw needs a value range
        for rarity, weight in self.weights.items():
            if weight > 0 and rarity not in self.value_ranges:
                raise ConfigurationError(f"{pack_id}: no value range for {rarity.value}")

    @classmethod
    def from_dict(cls, data: Mapping, pack_id: str = "?") -> "PackRarityTable":
        """Build a table from the ``rarity_weights`` / ``value_ranges`` / ``catalog``
        sections of a pack JSON definition."""
        try:
            weights = {Rarity.parse(r): float(w) for r, w in data.get("rarity_weights", {}).items()}
            value_ranges = {}
            for r, bounds in data.get("value_ranges", {}).items():
                low, high = bounds
                value_ranges[Rarity.parse(r)] = (int(low), int(high))
            catalog = {}
            for r, entries in data.get("catalog", {}).items():
                catalog[Rarity.parse(r)] = tuple(_entry(e) for e in entries)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"{pack_id}: malformed rarity table ({e})") from e

        table = cls(weights=weights, value_ranges=value_ranges, catalog=catalog)
        table.validate(pack_id)
        return table


def _entry(raw) -> CatalogEntry:
    if isinstance(raw, str):
        return CatalogEntry(name=raw)
    return CatalogEntry(name=raw["name"], image=raw.get("image", ""))


class RarityTable:
    """Lookup of rarity tables by pack id.

    Unknown pack ids raise :class:`PackNotFoundError` (a ConfigurationError);
    there is deliberately no fallback table, since a default could break a
    pack's advertised guarantees.
    """

    def __init__(self, tables: Mapping[str, PackRarityTable] = None):
        self._tables: Dict[str, PackRarityTable] = {}
        for pack_id, table in (tables or {}).items():
            self.register(pack_id, table)

    def register(self, pack_id: str, table: PackRarityTable) -> None:
        table.validate(pack_id)
        self._tables[pack_id] = table

    def pack_ids(self) -> List[str]:
        return list(self._tables)

    def __contains__(self, pack_id) -> bool:
        return pack_id in self._tables

    def _table(self, pack_id: str) -> PackRarityTable:
        try:
            return self._tables[pack_id]
        except KeyError:
            raise PackNotFoundError(pack_id) from None

    def weights_for(self, pack_id: str) -> Dict[Rarity, float]:
        table = self._table(pack_id)
        # rarity order keeps seeded draws reproducible
        return {r: table.weights[r] for r in Rarity if r in table.weights}

    def value_range_for(self, pack_id: str, rarity: Rarity) -> Tuple[int, int]:
        table = self._table(pack_id)
        try:
            return table.value_ranges[rarity]
        except KeyError:
            raise ConfigurationError(f"{pack_id}: no value range for {rarity.value}") from None

    def catalog_for(self, pack_id: str, rarity: Rarity) -> Tuple[CatalogEntry, ...]:
        return tuple(self._table(pack_id).catalog.get(rarity, ()))

    def drawable_weights(self, pack_id: str) -> Dict[Rarity, float]:
        """Weights restricted to rarities that can actually produce a card."""
        return {
            r: w for r, w in self.weights_for(pack_id).items()
            if w > 0 and self.catalog_for(pack_id, r)
        }

    def probabilities_for(self, pack_id: str) -> Dict[Rarity, float]:
        drawable = self.drawable_weights(pack_id)
        total = sum(drawable.values())
        if total <= 0:
            return {}
        return {r: w / total for r, w in drawable.items()}
