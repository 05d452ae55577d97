# card data class.
# Immutable value object for one drawn card. `rarity` and `value` are fixed when
# the generator draws the card; lifecycle changes (expiry stamp, sold, shipped,
# converted) produce a new instance through `dataclasses.replace`.
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from pack_components.errors import ConfigurationError


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"

    @property
    def rank(self) -> int:
        return _RARITY_ORDER.index(self)

    @classmethod
    def parse(cls, value) -> "Rarity":
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Unknown rarity '{value}'") from None


_RARITY_ORDER = list(Rarity)


class Finish(str, Enum):
    NORMAL = "normal"
    FOIL = "foil"
    HOLOGRAPHIC = "holographic"
    REVERSE_FOIL = "reverse-foil"


class CardStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    SHIPPED = "shipped"
    CONVERTED = "converted"


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # older records end in "Z"
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class Card:
    id: str
    name: str
    rarity: Rarity
    value: int
    finish: Finish = Finish.NORMAL
    image: str = ""
    pack_id: Optional[str] = None
    expiry_date: Optional[datetime] = None
    status: CardStatus = CardStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        # a card that never entered a collection has no clock running
        if self.expiry_date is None:
            return False
        return now >= self.expiry_date

    @property
    def is_active(self) -> bool:
        return self.status is CardStatus.ACTIVE

    def with_expiry(self, collected_at: datetime, window: timedelta) -> "Card":
        return replace(self, expiry_date=collected_at + window)

    def with_status(self, status: CardStatus) -> "Card":
        return replace(self, status=status)

    def to_record(self) -> Dict[str, Any]:
        """Serialise to the JSON card schema shared with storage and the mock API."""
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "rarity": self.rarity.value,
            "value": self.value,
            "finish": self.finish.value,
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "packId": self.pack_id,
            "status": self.status.value,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Card":
        return cls(
            id=str(record["id"]),
            name=record["name"],
            rarity=Rarity.parse(record["rarity"]),
            value=int(record["value"]),
            finish=Finish(record.get("finish") or Finish.NORMAL.value),
            image=record.get("image", ""),
            pack_id=record.get("packId"),
            expiry_date=_parse_datetime(record.get("expiryDate")),
            status=CardStatus(record.get("status") or CardStatus.ACTIVE.value),
        )
