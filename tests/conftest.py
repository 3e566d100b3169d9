"""Shared test fixtures and helpers."""

from dataclasses import replace
from types import SimpleNamespace
from typing import Optional, Sequence

import pytest

from src.config import BusinessConfig, ConciergeConfig, PersistenceConfig
from src.conversation.concierge import AppointmentConcierge
from src.conversation.state_machine import GeneratorInstruction
from src.errors import NotificationError, ReplyGeneratorError
from src.schemas.conversation_schema import ChatMessage, Role
from src.schemas.lead_schema import ConversationSlots, NotifierRequest
from src.tools.session_store import InMemorySessionStore

GREETING = "Hi, I'm Rob from MacWORLD. What device make and model would you like help with today?"
RELAY_URL = "http://relay.test/api/send-email"

BOOKING_TURNS = [
    "iPhone 13 screen cracked",
    "Ada Obi, +2348011112222",
    "ada@example.com",
    "Saturday morning",
]


class FakeReplyGenerator:
    """Records every request; optionally fails."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[list[ChatMessage], GeneratorInstruction]] = []

    async def generate(
        self, messages: Sequence[ChatMessage], instruction: GeneratorInstruction
    ) -> str:
        self.calls.append((list(messages), instruction))
        if self.fail:
            raise ReplyGeneratorError("upstream unavailable")
        return f"  Reply for {instruction.next_step.value}  "


class FakeNotifier:
    """Records every notification; optionally fails."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.requests: list[NotifierRequest] = []
        self.histories: list[list[ChatMessage]] = []

    async def notify(self, request: NotifierRequest, history: Sequence[ChatMessage]) -> None:
        self.requests.append(request)
        self.histories.append(list(history))
        if self.fail:
            raise NotificationError("relay returned 500")


class FakeQuery:
    """Mimics the chained supabase query builder for one table."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.filters = {}
        self.payload = None

    def select(self, _columns):
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, _count):
        return self

    def insert(self, payload):
        self.payload = payload
        return self

    def execute(self):
        if self.table in self.db.failing:
            raise RuntimeError(f"{self.table} unavailable")
        rows = self.db.tables.setdefault(self.table, [])
        if self.payload is None:
            found = [r for r in rows if all(r.get(k) == v for k, v in self.filters.items())]
            return SimpleNamespace(data=found[:1])
        batch = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for row in batch:
            row = {self.db.id_column: f"{self.table}-{len(rows) + 1}", **row}
            rows.append(row)
            inserted.append(row)
        return SimpleNamespace(data=inserted)


class FakeSupabase:
    """In-memory tables behind the supabase client interface."""

    def __init__(self, failing=(), id_column="id"):
        self.tables = {}
        self.failing = set(failing)
        self.id_column = id_column

    def table(self, name):
        return FakeQuery(self, name)


def make_config(**overrides) -> ConciergeConfig:
    base = replace(
        ConciergeConfig(),
        reply_generator_key="test-key",
        notifier_endpoint=RELAY_URL,
        operator_address="admin@macworld.test",
        support_address="support@macworld.test",
        assistant_name="Rob",
    )
    return replace(base, **overrides)


def make_history(*turns: tuple[str, str]) -> tuple[ChatMessage, ...]:
    """Build a transcript from (role, text) tuples, seeded with the greeting."""
    messages = [ChatMessage(role=Role.ASSISTANT, content=GREETING)]
    for role, text in turns:
        messages.append(ChatMessage(role=Role(role), content=text))
    return tuple(messages)


@pytest.fixture
def empty_slots():
    return ConversationSlots()


@pytest.fixture
def history():
    return make_history()


@pytest.fixture
def business():
    return BusinessConfig()


@pytest.fixture
def persistence():
    return PersistenceConfig()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def generator():
    return FakeReplyGenerator()


@pytest.fixture
def notifier():
    return FakeNotifier()


def build_concierge(
    store: InMemorySessionStore,
    generator: Optional[FakeReplyGenerator] = None,
    notifier: Optional[FakeNotifier] = None,
    **config_overrides,
) -> AppointmentConcierge:
    concierge = AppointmentConcierge(
        config=make_config(**config_overrides),
        reply_generator=generator or FakeReplyGenerator(),
        notifier=notifier or FakeNotifier(),
        store=store,
        business=BusinessConfig(),
        persistence=PersistenceConfig(),
        session_id="SESSION-test",
    )
    concierge.restore()
    return concierge


@pytest.fixture
def concierge(store, generator, notifier):
    return build_concierge(store, generator, notifier)
