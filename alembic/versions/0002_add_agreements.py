"""Add agreements table

Revision ID: 0002_add_agreements
Revises: 0001_add_subscriptions
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '0002_add_agreements'
down_revision: Union[str, None] = '0001_add_subscriptions'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create agreements table (NDA metadata, file kept in storage)."""

    op.create_table(
        'agreements',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),

        # File reference
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.String(1024), nullable=False),
        sa.Column('file_size', sa.Integer, server_default='0', nullable=False),

        # Agreement details
        sa.Column('counterparty_name', sa.String(255), nullable=False),
        sa.Column('effective_date', sa.Date),
        sa.Column('expiration_date', sa.Date, nullable=False),
        sa.Column('confidentiality_period', sa.Integer),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('alert_enabled', sa.Boolean, server_default='true', nullable=False),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        sa.CheckConstraint(
            "status IN ('active', 'expiring_soon', 'expired')",
            name='ck_agreements_status',
        ),
        sa.CheckConstraint(
            'effective_date IS NULL OR effective_date < expiration_date',
            name='ck_agreements_date_order',
        ),
    )

    op.create_index('ix_agreements_user_id', 'agreements', ['user_id'])
    op.create_index('ix_agreements_expiration_date', 'agreements', ['expiration_date'])
    # Daily alert query: alert_enabled AND status = 'active' AND expiration_date = :target
    op.create_index(
        'ix_agreements_alert_lookup',
        'agreements',
        ['expiration_date'],
        postgresql_where=sa.text("alert_enabled AND status = 'active'"),
    )

    # =========================================================================
    # RLS (User-owned)
    # =========================================================================
    op.execute("ALTER TABLE public.agreements ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY agreements_select_policy ON public.agreements
        FOR SELECT USING (user_id = auth.uid())
    """)
    op.execute("""
        CREATE POLICY agreements_insert_policy ON public.agreements
        FOR INSERT WITH CHECK (user_id = auth.uid())
    """)
    op.execute("""
        CREATE POLICY agreements_update_policy ON public.agreements
        FOR UPDATE USING (user_id = auth.uid()) WITH CHECK (user_id = auth.uid())
    """)
    op.execute("""
        CREATE POLICY agreements_delete_policy ON public.agreements
        FOR DELETE USING (user_id = auth.uid())
    """)


def downgrade() -> None:
    for policy in (
        'agreements_select_policy',
        'agreements_insert_policy',
        'agreements_update_policy',
        'agreements_delete_policy',
    ):
        op.execute(f'DROP POLICY IF EXISTS {policy} ON public.agreements')

    op.drop_index('ix_agreements_alert_lookup', table_name='agreements')
    op.drop_index('ix_agreements_expiration_date', table_name='agreements')
    op.drop_index('ix_agreements_user_id', table_name='agreements')
    op.drop_table('agreements')
