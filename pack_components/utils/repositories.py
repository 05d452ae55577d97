# Storage seams for the engine. The collection manager and ledger only talk to
# these interfaces; the in-memory versions back tests and the mock API, the
# SQLite versions live in db_access.py.
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Set

from pack_components.card_utils.card import Card, CardStatus
from pack_components.errors import DuplicateCommitError
from pack_components.transaction import Transaction


class CollectionRepository(ABC):

    @abstractmethod
    def get(self, card_id: str) -> Optional[Card]: ...

    @abstractmethod
    def list_cards(self, status: Optional[CardStatus] = None) -> List[Card]: ...

    @abstractmethod
    def is_committed(self, session_id: str) -> bool: ...

    @abstractmethod
    def commit_session(self, session_id: str, cards: Sequence[Card]) -> None:
        """Store ``cards`` and remember ``session_id`` in one step.

        Raises DuplicateCommitError if the session was committed before; in
        that case nothing is stored.
        """

    @abstractmethod
    def save_many(self, cards: Sequence[Card]) -> None:
        """Replace already-stored cards (status changes)."""


class LedgerRepository(ABC):

    @abstractmethod
    def get_balance(self) -> float: ...

    @abstractmethod
    def apply(self, delta: float, transaction: Transaction) -> float:
        """Add ``delta`` to the balance and append ``transaction`` together.
        Returns the new balance."""

    @abstractmethod
    def list_transactions(self) -> List[Transaction]:
        """Newest first."""


class InMemoryCollectionRepository(CollectionRepository):
    def __init__(self, cards: Sequence[Card] = ()):
        self._cards: Dict[str, Card] = {card.id: card for card in cards}
        self._sessions: Set[str] = set()

    def get(self, card_id):
        return self._cards.get(card_id)

    def list_cards(self, status=None):
        return [c for c in self._cards.values() if status is None or c.status is status]

    def is_committed(self, session_id):
        return session_id in self._sessions

    def commit_session(self, session_id, cards):
        if session_id in self._sessions:
            raise DuplicateCommitError(session_id)
        self._sessions.add(session_id)
        for card in cards:
            self._cards[card.id] = card

    def save_many(self, cards):
        for card in cards:
            if card.id not in self._cards:
                raise KeyError(card.id)
        for card in cards:
            self._cards[card.id] = card


class InMemoryLedgerRepository(LedgerRepository):
    def __init__(self, balance: float = 0):
        self._balance = balance
        self._transactions: List[Transaction] = []

    def get_balance(self):
        return self._balance

    def apply(self, delta, transaction):
        self._balance = round(self._balance + delta, 2)
        self._transactions.insert(0, transaction)
        return self._balance

    def list_transactions(self):
        return list(self._transactions)
