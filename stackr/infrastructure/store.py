"""
Per-user keyed state store.

All engine state lives under (namespace, user_id) as JSON-serializable
values. Writers for the same user serialize through ``lock(user_id)``;
different users never contend.

Implementations:
- InMemoryStore: process-local dicts (tests, dev)
- SqlStore (stackr.infrastructure.sql_store): SQLAlchemy over user_state
"""
import copy
import threading
import weakref
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from stackr.config import Settings
from stackr.domain.guardrail import Transaction

NOTIFICATIONS = "notifications"
NOTIFICATION_UNREAD = "notification_unread"
ACHIEVEMENTS = "achievements"
SCORECARDS = "scorecards"
REMINDERS = "reminders"
PUSH_SUBSCRIPTIONS = "push_subscriptions"


class UserLocks:
    """Registry of re-entrant locks, one per user id.

    Entries are weak: a lock is dropped once no caller holds or waits on it,
    so the registry only tracks users with work in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def get(self, user_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.RLock()
            return lock


class UserStateStore(ABC):
    """Keyed repository used by every service; see module docstring."""

    def __init__(self):
        self._locks = UserLocks()

    @contextmanager
    def lock(self, user_id: str) -> Iterator[None]:
        with self._locks.get(user_id):
            yield

    @abstractmethod
    def get(self, namespace: str, user_id: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def put(self, namespace: str, user_id: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, namespace: str, user_id: str) -> None:
        ...

    @abstractmethod
    def user_ids(self, namespace: str) -> list[str]:
        ...

    # -- transaction source --------------------------------------------------

    @abstractmethod
    def add_transaction(self, user_id: str, transaction: Transaction) -> None:
        ...

    @abstractmethod
    def fetch_transactions(self, user_id: str, start: datetime, end: datetime) -> list[Transaction]:
        """Transactions with start <= date <= end, oldest first."""


class InMemoryStore(UserStateStore):
    """Values are deep-copied in and out so callers never share state."""

    def __init__(self):
        super().__init__()
        self._data: dict[str, dict[str, Any]] = defaultdict(dict)
        self._transactions: dict[str, list[Transaction]] = defaultdict(list)

    def get(self, namespace, user_id, default=None):
        if user_id not in self._data[namespace]:
            return copy.deepcopy(default)
        return copy.deepcopy(self._data[namespace][user_id])

    def put(self, namespace, user_id, value):
        self._data[namespace][user_id] = copy.deepcopy(value)

    def delete(self, namespace, user_id):
        self._data[namespace].pop(user_id, None)

    def user_ids(self, namespace):
        return sorted(self._data[namespace])

    def add_transaction(self, user_id, transaction):
        self._transactions[user_id].append(transaction)

    def fetch_transactions(self, user_id, start, end):
        found = [t for t in self._transactions.get(user_id, []) if start <= t.date <= end]
        return sorted(found, key=lambda t: t.date)


def build_store(settings: Settings) -> UserStateStore:
    """Pick the store implementation from STORE_BACKEND."""
    backend = settings.STORE_BACKEND.lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "sql":
        from stackr.infrastructure.db.session import get_engine
        from stackr.infrastructure.sql_store import SqlStore

        return SqlStore(get_engine(settings))
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")
