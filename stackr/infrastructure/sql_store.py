"""
SQLAlchemy-backed user state store.

Every write runs in its own session and commits immediately; per-user
serialization still goes through ``lock(user_id)``.
"""
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.engine import Engine

from stackr.domain.guardrail import Transaction
from stackr.infrastructure.db.models import SpendingTransactionRow, UserStateRow
from stackr.infrastructure.db.session import get_session_factory
from stackr.infrastructure.store import UserStateStore
from stackr.utils.dates import ensure_aware, utcnow
from stackr.utils.money import to_amount


def _utc(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(timezone.utc)


class SqlStore(UserStateStore):

    def __init__(self, engine: Engine):
        super().__init__()
        self._Session = get_session_factory(engine)

    def get(self, namespace, user_id, default=None):
        with self._Session() as db:
            row = db.get(UserStateRow, (user_id, namespace))
            return row.payload if row is not None else default

    def put(self, namespace, user_id, value):
        with self._Session() as db:
            row = db.get(UserStateRow, (user_id, namespace))
            if row is None:
                db.add(UserStateRow(user_id=user_id, namespace=namespace, payload=value, updated_at=utcnow()))
            else:
                row.payload = value
                row.updated_at = utcnow()
            db.commit()

    def delete(self, namespace, user_id):
        with self._Session() as db:
            row = db.get(UserStateRow, (user_id, namespace))
            if row is not None:
                db.delete(row)
                db.commit()

    def user_ids(self, namespace):
        with self._Session() as db:
            stmt = (
                select(UserStateRow.user_id)
                .where(UserStateRow.namespace == namespace)
                .order_by(UserStateRow.user_id)
            )
            return list(db.scalars(stmt))

    def add_transaction(self, user_id, transaction):
        with self._Session() as db:
            db.add(SpendingTransactionRow(
                id=transaction.id,
                user_id=user_id,
                category=transaction.category,
                amount=transaction.amount,
                description=transaction.description,
                occurred_at=_utc(transaction.date),
            ))
            db.commit()

    def fetch_transactions(self, user_id, start, end):
        with self._Session() as db:
            stmt = (
                select(SpendingTransactionRow)
                .where(
                    SpendingTransactionRow.user_id == user_id,
                    SpendingTransactionRow.occurred_at >= _utc(start),
                    SpendingTransactionRow.occurred_at <= _utc(end),
                )
                .order_by(SpendingTransactionRow.occurred_at)
            )
            return [
                Transaction(
                    id=row.id,
                    category=row.category,
                    amount=to_amount(row.amount),
                    description=row.description,
                    date=_utc(row.occurred_at),
                )
                for row in db.scalars(stmt)
            ]
