"""
Transaction domain events.

Dataclass events record transaction lifecycle facts for downstream handling
(e.g., audit logs, reconciliation). Domain remains free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid


@dataclass
class TransactionEvent:
    transaction_id: int
    card_id: int
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class TransactionCreated(TransactionEvent):
    amount: str = ""
    currency: str = ""


@dataclass
class TransactionConfirmed(TransactionEvent):
    amount: str = ""


@dataclass
class TransactionCanceled(TransactionEvent):
    pass


@dataclass
class TransactionReturned(TransactionEvent):
    refunded_amount: str = ""
    unreturnable_fee: str = ""
