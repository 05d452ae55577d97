import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    CREDIT_ADD = "credit_add"
    BUYBACK = "buyback"
    EXPIRY_CONVERSION = "expiry_conversion"
    SHIPPING = "shipping"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CREDITS = "credits"
    PAYPAL = "paypal"


@dataclass(frozen=True)
class Transaction:
    type: TransactionType
    amount: float
    date: datetime
    status: TransactionStatus = TransactionStatus.COMPLETED
    description: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "description": self.description,
            "details": self.details,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Transaction":
        return cls(
            id=record["id"],
            type=TransactionType(record["type"]),
            amount=record["amount"],
            date=datetime.fromisoformat(record["date"]),
            status=TransactionStatus(record.get("status", TransactionStatus.COMPLETED.value)),
            description=record.get("description", ""),
            details=record.get("details") or {},
        )
