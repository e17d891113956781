"""create accounts, pits, messages and otp_codes

Revision ID: 0001_create_pit_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_create_pit_tables'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


account_type = sa.Enum('individual', 'organization', name='account_type')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('account_type', account_type, nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('google_sub', sa.String(length=128), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('google_sub'),
    )
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)

    op.create_table(
        'pits',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('creator_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False, server_default='Anonymous Feedback'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['creator_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pits_creator_id', 'pits', ['creator_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('pit_id', sa.Uuid(), nullable=False),
        sa.Column('original_message', sa.Text(), nullable=False),
        sa.Column('processed_message', sa.Text(), nullable=True),
        sa.Column('is_professional', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['pit_id'], ['pits.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_pit_id', 'messages', ['pit_id'])

    op.create_table(
        'otp_codes',
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('code_hash', sa.String(length=128), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('email'),
    )
    op.create_index('ix_otp_codes_expires_at', 'otp_codes', ['expires_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_otp_codes_expires_at', table_name='otp_codes')
    op.drop_table('otp_codes')
    op.drop_index('ix_messages_pit_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_pits_creator_id', table_name='pits')
    op.drop_table('pits')
    op.drop_index('ix_accounts_email', table_name='accounts')
    op.drop_table('accounts')
    account_type.drop(op.get_bind(), checkfirst=True)
