"""Pack-opening reveal state machine.

A :class:`RevealSession` is an immutable value: every transition returns a new
session and leaves the old one untouched, so the presentation layer can keep
whichever snapshot it is rendering. States run

    CLOSED --start--> REVEALING(i) --next/skip--> COMPLETE

and COMPLETE is terminal. Skipping only changes what has been *shown*; the
outcome of :meth:`RevealSession.finish` always carries every card of the pack.
"""
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

from pack_components.card_utils.card import Card, Rarity
from pack_components.errors import EmptyPackError, InvalidTransitionError
from pack_logs.loggers import reveal_logger


class RevealState(str, Enum):
    CLOSED = "closed"
    REVEALING = "revealing"
    COMPLETE = "complete"


def sort_for_reveal(cards: Iterable[Card]) -> Tuple[Card, ...]:
    # sorted() is stable, so same-rarity cards keep generator order
    return tuple(sorted(cards, key=lambda c: c.rarity.rank))


@dataclass(frozen=True)
class RevealOutcome:
    session_id: str
    pack_id: Optional[str]
    cards: Tuple[Card, ...]
    skipped_to_rare: bool


@dataclass(frozen=True)
class RevealSession:
    session_id: str
    ordered_cards: Tuple[Card, ...]
    current_index: int = -1
    skipped_to_rare: bool = False
    pack_id: Optional[str] = None

    @classmethod
    def create(cls, cards: Iterable[Card], pack_id: Optional[str] = None,
               session_id: Optional[str] = None) -> "RevealSession":
        """Start a fresh, unopened session; commons are revealed first."""
        ordered = sort_for_reveal(cards)
        session = cls(
            session_id=session_id or uuid.uuid4().hex,
            ordered_cards=ordered,
            pack_id=pack_id,
        )
        reveal_logger.debug(
            "reveal_session_created",
            session_id=session.session_id,
            pack_id=pack_id,
            card_count=len(ordered),
        )
        return session

    @property
    def state(self) -> RevealState:
        if self.current_index < 0:
            return RevealState.CLOSED
        if self.current_index >= len(self.ordered_cards):
            return RevealState.COMPLETE
        return RevealState.REVEALING

    @property
    def current_card(self) -> Optional[Card]:
        if self.state is RevealState.REVEALING:
            return self.ordered_cards[self.current_index]
        return None

    @property
    def revealed_cards(self) -> Tuple[Card, ...]:
        """Cards the user has seen so far (the current one included)."""
        if self.state is RevealState.CLOSED:
            return ()
        return self.ordered_cards[:self.current_index + 1]

    @property
    def remaining(self) -> int:
        return len(self.ordered_cards) - len(self.revealed_cards)

    @property
    def progress(self) -> float:
        if not self.ordered_cards:
            return 1.0 if self.state is RevealState.COMPLETE else 0.0
        return len(self.revealed_cards) / len(self.ordered_cards)

    @property
    def has_rares(self) -> bool:
        return self._first_rare_from(0) is not None

    def _require(self, action: str, *states: RevealState) -> None:
        if self.state not in states:
            reveal_logger.warning(
                "reveal_invalid_transition",
                session_id=self.session_id,
                action=action,
                state=self.state.value,
            )
            raise InvalidTransitionError(action, self.state.value)

    def _first_rare_from(self, start: int) -> Optional[int]:
        for index in range(start, len(self.ordered_cards)):
            if self.ordered_cards[index].rarity.rank >= Rarity.RARE.rank:
                return index
        return None

    def _complete(self, **changes) -> "RevealSession":
        return replace(self, current_index=len(self.ordered_cards), **changes)

    def start(self) -> "RevealSession":
        self._require("start", RevealState.CLOSED)
        if not self.ordered_cards:
            raise EmptyPackError()
        reveal_logger.info(
            "reveal_started",
            session_id=self.session_id,
            pack_id=self.pack_id,
            card_count=len(self.ordered_cards),
        )
        return replace(self, current_index=0)

    def next(self) -> "RevealSession":
        self._require("reveal the next card", RevealState.REVEALING)
        if self.current_index + 1 < len(self.ordered_cards):
            return replace(self, current_index=self.current_index + 1)
        reveal_logger.info("reveal_completed", session_id=self.session_id, skipped=self.skipped_to_rare)
        return self._complete()

    def skip_to_rare(self) -> "RevealSession":
        """Jump to the first rare-or-better card at or after the current one.

        Without one left this is the same as :meth:`skip_all`.
        """
        self._require("skip to rares", RevealState.REVEALING)
        target = self._first_rare_from(self.current_index)
        if target is None:
            return self.skip_all()
        reveal_logger.info(
            "reveal_skipped_to_rare",
            session_id=self.session_id,
            from_index=self.current_index,
            to_index=target,
        )
        return replace(self, current_index=target, skipped_to_rare=True)

    def skip_all(self) -> "RevealSession":
        self._require("skip the reveal", RevealState.REVEALING)
        reveal_logger.info(
            "reveal_skipped_all",
            session_id=self.session_id,
            from_index=self.current_index,
            unseen=len(self.ordered_cards) - self.current_index - 1,
        )
        return self._complete(skipped_to_rare=True)

    def finish(self) -> Tuple["RevealSession", RevealOutcome]:
        """Complete the session, abandoning any unseen reveals, and hand back
        the outcome to commit. Every card of the pack is in the outcome."""
        self._require("finish", RevealState.REVEALING, RevealState.COMPLETE)
        session = self
        if self.state is RevealState.REVEALING:
            reveal_logger.info(
                "reveal_abandoned",
                session_id=self.session_id,
                at_index=self.current_index,
            )
            session = self._complete()
        outcome = RevealOutcome(
            session_id=session.session_id,
            pack_id=session.pack_id,
            cards=session.ordered_cards,
            skipped_to_rare=session.skipped_to_rare,
        )
        return session, outcome

    def to_dict(self) -> dict:
        current = self.current_card
        return {
            "sessionId": self.session_id,
            "packId": self.pack_id,
            "state": self.state.value,
            "currentIndex": self.current_index,
            "cardCount": len(self.ordered_cards),
            "currentCard": current.to_record() if current else None,
            "revealedCards": [c.to_record() for c in self.revealed_cards],
            "progress": round(self.progress, 4),
            "skippedToRare": self.skipped_to_rare,
        }
