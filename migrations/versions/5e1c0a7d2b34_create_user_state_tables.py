"""create user_state and spending_transactions tables

Revision ID: 5e1c0a7d2b34
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5e1c0a7d2b34'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_state',
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('payload', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('user_id', 'namespace'),
    )
    op.create_table(
        'spending_transactions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('occurred_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_spending_transactions_user_occurred',
        'spending_transactions',
        ['user_id', 'occurred_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_spending_transactions_user_occurred', table_name='spending_transactions')
    op.drop_table('spending_transactions')
    op.drop_table('user_state')
