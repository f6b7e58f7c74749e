"""create_cards_and_transactions

Revision ID: 3c1f2a9d7b10
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'cards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('card_number', sa.String(length=19), nullable=False, comment='卡号'),
        sa.Column('card_name', sa.String(length=100), nullable=False, comment='持卡人/卡片名称'),
        sa.Column('expiration_date', sa.Date(), nullable=False, comment='有效期'),
        sa.Column('cvv', sa.Integer(), nullable=False, comment='CVV'),
        sa.Column('balance', sa.Numeric(precision=18, scale=2), nullable=False, server_default='0', comment='余额'),
        sa.Column('currency_type', sa.String(length=3), nullable=False, comment='货币代码 ISO-4217'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1', comment='余额版本号'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cards_id', 'cards', ['id'], unique=False)
    op.create_index('ix_cards_card_number', 'cards', ['card_number'], unique=True)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False, comment='所属卡片ID'),
        sa.Column('total_amount', sa.Numeric(precision=18, scale=2), nullable=False, comment='交易金额'),
        sa.Column('unreturnable_fee', sa.Numeric(precision=18, scale=2), nullable=False, server_default='0', comment='退回时不返还的手续费'),
        sa.Column('currency_type', sa.String(length=3), nullable=False, comment='货币代码'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='Pending', comment='交易状态: Pending/Confirmed/Canceled/Returned'),
        sa.Column('confirmation_code', sa.String(length=16), nullable=False, comment='确认码'),
        sa.Column('confirmation_code_expires_at', sa.DateTime(timezone=True), nullable=False, comment='确认码过期时间'),
        sa.Column('transaction_date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='交易时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True, comment='确认时间'),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True, comment='取消时间'),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True, comment='退回时间'),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'], unique=False)
    op.create_index('ix_transactions_card_id', 'transactions', ['card_id'], unique=False)
    op.create_index('ix_transactions_status', 'transactions', ['status'], unique=False)
    op.create_index('ix_transactions_card_status', 'transactions', ['card_id', 'status'], unique=False)
    op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_transactions_transaction_date', table_name='transactions')
    op.drop_index('ix_transactions_card_status', table_name='transactions')
    op.drop_index('ix_transactions_status', table_name='transactions')
    op.drop_index('ix_transactions_card_id', table_name='transactions')
    op.drop_index('ix_transactions_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_cards_card_number', table_name='cards')
    op.drop_index('ix_cards_id', table_name='cards')
    op.drop_table('cards')
