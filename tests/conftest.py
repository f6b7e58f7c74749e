"""Pytest bootstrap configuration.

Environment variables are set before any module that reads application
settings is imported. Fixtures provide in-memory repositories for domain
tests and a SQLite-backed unit of work for application and API tests.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LEDGER__RETRY_DELAY", "0")
os.environ.setdefault("DEBUG", "false")

from copy import deepcopy
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from domain.card.entity import Card
from domain.card.repository import CardRepository
from domain.transaction.entity import Transaction, TransactionStatus
from domain.transaction.repository import TransactionRepository
from infrastructure.database import enable_sqlite_foreign_keys
from infrastructure.models import Base
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


class InMemoryCardRepository(CardRepository):
    def __init__(self):
        self.rows: Dict[int, Card] = {}
        self._next_id = 1

    async def create(self, card: Card) -> Card:
        card = deepcopy(card)
        card.id = self._next_id
        self._next_id += 1
        self.rows[card.id] = card
        return deepcopy(card)

    async def get_by_id(self, card_id: int) -> Optional[Card]:
        card = self.rows.get(card_id)
        return deepcopy(card) if card else None

    async def get_by_card_number(self, card_number: str) -> Optional[Card]:
        for card in self.rows.values():
            if card.card_number == card_number:
                return deepcopy(card)
        return None

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[Card]:
        cards = sorted(self.rows.values(), key=lambda c: c.id)
        return [deepcopy(c) for c in cards[skip:skip + limit]]

    async def count_all(self) -> int:
        return len(self.rows)

    async def update(self, card: Card) -> Card:
        stored = self.rows[card.id]
        stored.card_name = card.card_name
        stored.expiration_date = card.expiration_date
        stored.cvv = card.cvv
        stored.updated_at = card.updated_at
        return deepcopy(stored)

    async def update_balance(self, card_id: int, balance: Decimal, expected_version: int) -> bool:
        stored = self.rows.get(card_id)
        if stored is None or stored.version != expected_version:
            return False
        stored.balance = balance
        stored.version += 1
        return True

    async def delete(self, card_id: int) -> bool:
        return self.rows.pop(card_id, None) is not None


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self.rows: Dict[int, Transaction] = {}
        self._next_id = 1

    async def create(self, transaction: Transaction) -> Transaction:
        transaction = deepcopy(transaction)
        transaction.id = self._next_id
        self._next_id += 1
        self.rows[transaction.id] = transaction
        return deepcopy(transaction)

    async def get_by_id(self, transaction_id: int, *, for_update: bool = False) -> Optional[Transaction]:
        transaction = self.rows.get(transaction_id)
        return deepcopy(transaction) if transaction else None

    def _matching(self, card_id, status):
        return [
            t for t in self.rows.values()
            if (card_id is None or t.card_id == card_id)
            and (status is None or t.status == status)
        ]

    async def list(self, card_id=None, status=None, skip=0, limit=100) -> List[Transaction]:
        items = sorted(
            self._matching(card_id, status),
            key=lambda t: (t.transaction_date, t.id),
            reverse=True,
        )
        return [deepcopy(t) for t in items[skip:skip + limit]]

    async def count(self, card_id=None, status=None) -> int:
        return len(self._matching(card_id, status))

    async def update_status(self, transaction: Transaction, expected_status: TransactionStatus) -> bool:
        stored = self.rows.get(transaction.id)
        if stored is None or stored.status != expected_status:
            return False
        self.rows[transaction.id] = deepcopy(transaction)
        return True


class FixedCodeGenerator:
    def __init__(self, code: str = "ABC123"):
        self.code = code

    def generate(self) -> str:
        return self.code


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_card(**overrides) -> Card:
    fields = dict(
        id=None,
        card_number="4111111111111111",
        card_name="Alice",
        expiration_date=date(2030, 12, 31),
        cvv=123,
        currency_type="USD",
        balance=Decimal("0"),
    )
    fields.update(overrides)
    return Card(**fields)


@pytest.fixture
def card_repository():
    return InMemoryCardRepository()


@pytest.fixture
def transaction_repository():
    return InMemoryTransactionRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def code_generator():
    return FixedCodeGenerator()


@pytest.fixture
def card_factory():
    return make_card


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def uow_factory(session_factory):
    def _factory(readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory=session_factory, readonly=readonly)

    return _factory
