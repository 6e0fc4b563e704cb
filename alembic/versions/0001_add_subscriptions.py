"""Add subscriptions table

Revision ID: 0001_add_subscriptions
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_add_subscriptions'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create subscriptions table, one row per user."""

    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),

        # Payment provider IDs
        sa.Column('external_subscription_id', sa.String(255)),
        sa.Column('external_customer_id', sa.String(255)),

        # Subscription details
        sa.Column('plan_type', sa.String(20), server_default='free', nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),

        # Billing period dates
        sa.Column('current_period_start', sa.DateTime(timezone=True)),
        sa.Column('current_period_end', sa.DateTime(timezone=True)),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        sa.CheckConstraint("plan_type IN ('free', 'pro')", name='ck_subscriptions_plan_type'),
        sa.CheckConstraint(
            "status IN ('active', 'canceled', 'past_due', 'incomplete')",
            name='ck_subscriptions_status',
        ),
        sa.CheckConstraint(
            "plan_type = 'pro' OR external_subscription_id IS NULL",
            name='ck_subscriptions_free_has_no_external_id',
        ),
    )

    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'], unique=True)
    op.create_index(
        'ix_subscriptions_external_subscription_id',
        'subscriptions',
        ['external_subscription_id'],
        unique=True,
    )
    op.create_index(
        'ix_subscriptions_external_customer_id',
        'subscriptions',
        ['external_customer_id'],
        unique=True,
    )

    # Enable RLS
    op.execute('ALTER TABLE public.subscriptions ENABLE ROW LEVEL SECURITY')

    # RLS Policy: Users can only see their own subscription
    op.execute("""
        CREATE POLICY subscriptions_select_policy ON public.subscriptions
        FOR SELECT TO authenticated
        USING (user_id = auth.uid())
    """)

    # RLS Policy: Service role manages all subscriptions (webhooks, sync)
    op.execute("""
        CREATE POLICY subscriptions_service_role_policy ON public.subscriptions
        FOR ALL TO service_role
        USING (true)
        WITH CHECK (true)
    """)


def downgrade() -> None:
    """Drop subscriptions table."""

    op.execute('DROP POLICY IF EXISTS subscriptions_select_policy ON public.subscriptions')
    op.execute('DROP POLICY IF EXISTS subscriptions_service_role_policy ON public.subscriptions')

    op.drop_index('ix_subscriptions_external_customer_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_external_subscription_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_user_id', table_name='subscriptions')
    op.drop_table('subscriptions')
