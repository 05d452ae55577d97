"""Purchase -> reveal -> collection wiring.

The storefront is the only piece that knows about all the others. Its purchase
result has the same shape as the remote Purchase API payload, so a card list
generated by a backend can be fed to :meth:`Storefront.open_reveal` unchanged.
"""
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pack_components.card_utils.card import Card
from pack_components.card_utils.pack import CardGenerator, Pack
from pack_components.card_utils.pack_utils import load_pack_directory
from pack_components.card_utils.rarity_table import RarityTable
from pack_components.collection import CollectionManager
from pack_components.config import EngineConfig
from pack_components.errors import PackNotFoundError, PackUnavailableError
from pack_components.ledger import CreditLedger, utc_now
from pack_components.reveal import RevealSession, RevealState
from pack_components.transaction import PaymentMethod, Transaction, TransactionType
from pack_components.utils.repositories import CollectionRepository, LedgerRepository
from pack_logs.loggers import pack_logger


@dataclass(frozen=True)
class PurchaseResult:
    pack_id: str
    cards: Tuple[Card, ...]
    transaction: Transaction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "packId": self.pack_id,
            "cards": [c.to_record() for c in self.cards],
            "transaction": self.transaction.to_record(),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PurchaseResult":
        return cls(
            pack_id=payload["packId"],
            cards=tuple(Card.from_record(c) for c in payload["cards"]),
            transaction=Transaction.from_record(payload["transaction"]),
        )


class Storefront:

    def __init__(
        self,
        packs: Mapping[str, Pack],
        generator: CardGenerator,
        collection: CollectionManager,
        ledger: CreditLedger,
    ):
        self.packs = dict(packs)
        self.generator = generator
        self.collection = collection
        self.ledger = ledger

    @classmethod
    def build(
        cls,
        collection_repo: CollectionRepository,
        ledger_repo: LedgerRepository,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now,
        packs: Optional[Mapping[str, Pack]] = None,
        table: Optional[RarityTable] = None,
    ) -> "Storefront":
        """Wire a storefront from repositories, loading the packs from disk
        unless ``packs`` and ``table`` are given."""
        config = config or EngineConfig()
        if packs is None or table is None:
            packs, table = load_pack_directory(config.pack_json_dir)
        ledger = CreditLedger(ledger_repo, clock=clock)
        return cls(
            packs=packs,
            generator=CardGenerator(table, rng=rng),
            collection=CollectionManager(collection_repo, ledger, config=config, clock=clock),
            ledger=ledger,
        )

    def list_packs(self, available_only: bool = True) -> List[Pack]:
        packs = sorted(self.packs.values(), key=lambda p: p.price)
        return [p for p in packs if p.is_available or not available_only]

    def get_pack(self, pack_id: str) -> Pack:
        try:
            return self.packs[pack_id]
        except KeyError:
            raise PackNotFoundError(pack_id) from None

    def purchase_pack(self, pack_id: str, payment_method: PaymentMethod = PaymentMethod.CREDITS) -> PurchaseResult:
        pack = self.get_pack(pack_id)
        if not pack.is_available:
            raise PackUnavailableError(pack_id)
        payment_method = PaymentMethod(payment_method)

        # generation can fail on bad pack data; do it before any money moves
        cards = self.generator.generate(pack)
        details = {
            "packId": pack.id,
            "packName": pack.name,
            "paymentMethod": payment_method.value,
            "cardCount": len(cards),
        }
        # free packs have nothing to debit, so they are only recorded
        if payment_method is PaymentMethod.CREDITS and pack.price > 0:
            transaction = self.ledger.debit(pack.price, TransactionType.PURCHASE, f"{pack.name} Purchase", details)
        else:
            transaction = self.ledger.record(pack.price, TransactionType.PURCHASE, f"{pack.name} Purchase", details)

        pack_logger.info(
            "pack_purchased",
            pack_id=pack.id,
            payment_method=payment_method.value,
            price=pack.price,
            transaction_id=transaction.id,
        )
        return PurchaseResult(pack_id=pack.id, cards=tuple(cards), transaction=transaction)

    def open_reveal(self, purchase: PurchaseResult) -> RevealSession:
        # the transaction id doubles as the session id, so a retried commit of
        # the same purchase is recognised as a duplicate
        return RevealSession.create(purchase.cards, pack_id=purchase.pack_id, session_id=purchase.transaction.id)

    def finish_reveal(self, session: RevealSession) -> Tuple[RevealSession, Tuple[Card, ...]]:
        """Finish ``session`` wherever it stands and commit all of its cards.

        Returns the completed session with the newly committed cards; finishing
        an already committed session again commits nothing.
        """
        if session.state is RevealState.CLOSED:
            if not session.ordered_cards:
                return session, ()
            # abandoned before the first card was shown
            session = session.start()
        session, outcome = session.finish()
        return session, self.collection.commit(outcome)

    def complete_reveal(self, session: RevealSession) -> Tuple[Card, ...]:
        return self.finish_reveal(session)[1]

    def add_credits(self, amount: float) -> Transaction:
        return self.ledger.credit(amount, TransactionType.CREDIT_ADD, f"Added {amount} credits",
                                  {"creditsAdded": amount})
