"""Collection lifecycle: commit revealed cards, expire, sell and ship them.

All operations work on the injected repository snapshot and are
all-or-nothing from the caller's point of view: a rejected sell or ship
changes neither the collection nor the ledger. Remote synchronisation is
left to whoever owns the repository.
"""
import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pack_components.card_utils.card import Card, CardStatus
from pack_components.config import EngineConfig
from pack_components.errors import CardNotAvailableError, DuplicateCommitError
from pack_components.ledger import CreditLedger, utc_now
from pack_components.reveal import RevealOutcome
from pack_components.transaction import TransactionType
from pack_components.utils.repositories import CollectionRepository
from pack_logs.loggers import collection_logger


@dataclass(frozen=True)
class ConvertedCredits:
    converted_count: int
    credits_gained: float
    card_ids: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "convertedCount": self.converted_count,
            "creditsGained": self.credits_gained,
            "cardIds": list(self.card_ids),
        }


@dataclass(frozen=True)
class ShipmentResult:
    tracking_number: str
    shipping_cost: int
    estimated_delivery: datetime
    card_ids: Tuple[str, ...]
    transaction_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trackingNumber": self.tracking_number,
            "shippingCost": self.shipping_cost,
            "estimatedDelivery": self.estimated_delivery.isoformat(),
            "cardIds": list(self.card_ids),
            "cardCount": len(self.card_ids),
            "transactionId": self.transaction_id,
        }


def _expiry_key(card: Card):
    # cards without an expiry sort last
    return (card.expiry_date is None, card.expiry_date or datetime.max)


SORT_KEYS: Dict[str, Callable[[List[Card]], List[Card]]] = {
    "name": lambda cards: sorted(cards, key=lambda c: c.name.lower()),
    "rarity": lambda cards: sorted(cards, key=lambda c: (-c.rarity.rank, -c.value)),
    "value": lambda cards: sorted(cards, key=lambda c: -c.value),
    "expiry": lambda cards: sorted(cards, key=_expiry_key),
    "newest": lambda cards: list(reversed(cards)),
}


class CollectionManager:

    def __init__(
        self,
        repository: CollectionRepository,
        ledger: CreditLedger,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.ledger = ledger
        self.config = config or EngineConfig()
        self.clock = clock

    # -- reveal path -------------------------------------------------------

    def commit(self, cards: Union[RevealOutcome, Sequence[Card]], session_id: Optional[str] = None) -> Tuple[Card, ...]:
        """Add a finished reveal's cards to the collection, starting their expiry clock.

        Committing the same session twice is a no-op that returns ``()``.
        """
        if isinstance(cards, RevealOutcome):
            session_id = session_id or cards.session_id
            cards = cards.cards
        if not session_id:
            raise ValueError("commit needs the reveal session id")

        if self.repository.is_committed(session_id):
            collection_logger.warning("collection_commit_duplicate", session_id=session_id)
            return ()

        now = self.clock()
        stamped: List[Card] = []
        for card in cards:
            if self.repository.get(card.id) is not None:
                collection_logger.warning("collection_commit_card_exists", session_id=session_id, card_id=card.id)
                continue
            stamped.append(card.with_expiry(now, self.config.expiry_window))

        try:
            self.repository.commit_session(session_id, stamped)
        except DuplicateCommitError:
            collection_logger.warning("collection_commit_duplicate", session_id=session_id)
            return ()

        collection_logger.info(
            "collection_committed",
            session_id=session_id,
            card_count=len(stamped),
            expires_at=stamped[0].expiry_date.isoformat() if stamped else None,
        )
        return tuple(stamped)

    # -- lifecycle ---------------------------------------------------------

    def sweep_expired(self, now: Optional[datetime] = None) -> ConvertedCredits:
        """Convert every expired active card to credits at the conversion rate."""
        now = now or self.clock()
        expired = [c for c in self.repository.list_cards(CardStatus.ACTIVE) if c.is_expired(now)]
        if not expired:
            return ConvertedCredits(converted_count=0, credits_gained=0, card_ids=())

        credits = round(sum(c.value * self.config.conversion_rate for c in expired), 2)
        card_ids = tuple(c.id for c in expired)

        self.repository.save_many([c.with_status(CardStatus.CONVERTED) for c in expired])
        if credits > 0:
            self.ledger.credit(
                credits,
                TransactionType.EXPIRY_CONVERSION,
                description=f"Converted {len(expired)} expired cards",
                details={"cardIds": list(card_ids), "rate": self.config.conversion_rate},
            )

        collection_logger.info(
            "collection_expired_converted",
            converted_count=len(expired),
            credits_gained=credits,
        )
        return ConvertedCredits(converted_count=len(expired), credits_gained=credits, card_ids=card_ids)

    def _available(self, card_id: str, now: datetime) -> Card:
        card = self.repository.get(card_id)
        if card is None:
            reason = "not in collection"
        elif not card.is_active:
            reason = f"already {card.status.value}"
        elif card.is_expired(now):
            reason = "expired"
        else:
            return card
        collection_logger.warning("collection_card_unavailable", card_id=card_id, reason=reason)
        raise CardNotAvailableError(card_id, reason)

    def sell(self, card_id: str) -> int:
        """Buy a card back at its full value."""
        card = self._available(card_id, self.clock())
        self.repository.save_many([card.with_status(CardStatus.SOLD)])
        if card.value > 0:
            self.ledger.credit(
                card.value,
                TransactionType.BUYBACK,
                description=f"Sold {card.name}",
                details={"cardId": card.id, "rarity": card.rarity.value},
            )
        collection_logger.info("collection_card_sold", card_id=card.id, amount=card.value)
        return card.value

    def ship(self, card_ids: Iterable[str], address: Optional[Dict[str, Any]] = None) -> ShipmentResult:
        card_ids = list(card_ids)
        if not card_ids:
            raise CardNotAvailableError("-", "no cards selected for shipping")
        if len(set(card_ids)) != len(card_ids):
            raise CardNotAvailableError(",".join(card_ids), "selected more than once")

        now = self.clock()
        cards = [self._available(card_id, now) for card_id in card_ids]
        fee = self.config.shipping_fee(len(cards))
        tracking_number = f"HH{uuid.uuid4().hex[:10].upper()}"

        # the debit is the step that can still fail, so it goes first
        transaction = self.ledger.debit(
            fee,
            TransactionType.SHIPPING,
            description=f"Shipped {len(cards)} cards",
            details={"trackingNumber": tracking_number, "cardCount": len(cards), "address": address or {}},
        )
        self.repository.save_many([c.with_status(CardStatus.SHIPPED) for c in cards])

        collection_logger.info(
            "collection_cards_shipped",
            card_count=len(cards),
            shipping_cost=fee,
            tracking_number=tracking_number,
        )
        return ShipmentResult(
            tracking_number=tracking_number,
            shipping_cost=fee,
            estimated_delivery=now + timedelta(days=self.config.shipping_delivery_days),
            card_ids=tuple(card_ids),
            transaction_id=transaction.id,
        )

    # -- views -------------------------------------------------------------

    def cards(self, sort_by: str = "newest") -> List[Card]:
        try:
            sorter = SORT_KEYS[sort_by]
        except KeyError:
            raise ValueError(f"Unknown sort '{sort_by}', expected one of {sorted(SORT_KEYS)}") from None
        return sorter(self.repository.list_cards(CardStatus.ACTIVE))

    def collection_value(self) -> int:
        return sum(c.value for c in self.repository.list_cards(CardStatus.ACTIVE))

    def top_cards(self, n: int = 5) -> List[Card]:
        return self.cards(sort_by="value")[:n]

    def expiring_within(self, delta: timedelta, now: Optional[datetime] = None) -> List[Card]:
        """Active cards that are still claimable but expire within ``delta``."""
        now = now or self.clock()
        return [
            c for c in self.cards(sort_by="expiry")
            if c.expiry_date is not None and now < c.expiry_date <= now + delta
        ]

    def time_until_expiry(self, card_id: str, now: Optional[datetime] = None) -> timedelta:
        card = self.repository.get(card_id)
        if card is None or card.expiry_date is None:
            raise CardNotAvailableError(card_id, "not in collection")
        now = now or self.clock()
        return max(card.expiry_date - now, timedelta(0))


async def run_expiry_sweeper(
    manager: CollectionManager,
    interval: float,
    stop_event: Optional[asyncio.Event] = None,
    on_sweep: Optional[Callable[[ConvertedCredits], None]] = None,
) -> None:
    """Background task: sweep expired cards every ``interval`` seconds until stopped."""
    collection_logger.info("expiry_sweeper_started", interval=interval)
    while stop_event is None or not stop_event.is_set():
        try:
            result = manager.sweep_expired()
        except Exception as e:
            # a failed sweep is retried on the next tick
            collection_logger.error("expiry_sweep_failed", error_type=type(e).__name__, error=str(e))
        else:
            if result.converted_count and on_sweep is not None:
                on_sweep(result)
        if stop_event is None:
            await asyncio.sleep(interval)
            continue
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
    collection_logger.info("expiry_sweeper_stopped")
