from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pack_components.errors import InsufficientCreditsError
from pack_components.transaction import Transaction, TransactionStatus, TransactionType
from pack_components.utils.repositories import LedgerRepository
from pack_logs.loggers import ledger_logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CreditLedger:
    """The user's spendable credit balance.

    Every accepted change appends a completed Transaction. A rejected debit
    leaves both the balance and the history untouched.
    """

    def __init__(self, repository: LedgerRepository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.clock = clock

    @property
    def balance(self) -> float:
        return self.repository.get_balance()

    def can_afford(self, amount: float) -> bool:
        return self.balance >= amount

    def _apply(self, delta: float, type: TransactionType, amount: float,
               description: str, details: Optional[Dict[str, Any]]) -> Transaction:
        transaction = Transaction(
            type=type,
            amount=amount,
            date=self.clock(),
            status=TransactionStatus.COMPLETED,
            description=description,
            details=details or {},
        )
        new_balance = self.repository.apply(delta, transaction)
        ledger_logger.info(
            "ledger_transaction",
            transaction_id=transaction.id,
            type=type.value,
            delta=delta,
            balance=new_balance,
        )
        return transaction

    def credit(self, amount: float, type: TransactionType, description: str = "",
               details: Optional[Dict[str, Any]] = None) -> Transaction:
        if amount <= 0:
            raise ValueError(f"Credit amount must be positive, got {amount}")
        return self._apply(amount, type, amount, description, details)

    def debit(self, amount: float, type: TransactionType, description: str = "",
              details: Optional[Dict[str, Any]] = None) -> Transaction:
        if amount <= 0:
            raise ValueError(f"Debit amount must be positive, got {amount}")
        balance = self.balance
        if balance < amount:
            ledger_logger.warning(
                "ledger_debit_rejected",
                type=type.value,
                amount=amount,
                balance=balance,
            )
            raise InsufficientCreditsError(amount, balance)
        return self._apply(-amount, type, amount, description, details)

    def record(self, amount: float, type: TransactionType, description: str = "",
               details: Optional[Dict[str, Any]] = None) -> Transaction:
        """Log an externally settled payment (e.g. PayPal) without touching the balance."""
        return self._apply(0, type, amount, description, details)

    def transactions(self, limit: Optional[int] = None) -> List[Transaction]:
        history = self.repository.list_transactions()
        return history if limit is None else history[:limit]
