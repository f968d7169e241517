"""
SQLAlchemy ORM models for the persistent user-state store
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Index, Numeric, String, Text, TIMESTAMP
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from stackr.infrastructure.db.session import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class UserStateRow(Base):
    """
    One JSON document per (user, namespace).

    Namespaces: notifications, notification_unread, achievements,
    scorecards, reminders, push_subscriptions
    """
    __tablename__ = "user_state"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    namespace: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[dict | list] = mapped_column(JsonType, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)


class SpendingTransactionRow(Base):
    """Raw spending transaction (negative amount = expense)."""
    __tablename__ = "spending_transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    occurred_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_spending_transactions_user_occurred", "user_id", "occurred_at"),
    )
