"""Add AI order insight and shop session tables

Revision ID: 20251204_000001
Revises:
Create Date: 2025-12-04 03:33:39.000000

WHAT:
    Creates the ingestion service schema:
    - ai_order_insights: one AI insight + follow-up draft per (shop, order)
    - shop_sessions: Shopify Admin API tokens per installed shop

WHY:
    (shop, order_id) is unique so re-delivered order events overwrite the
    existing insight instead of duplicating it.

REFERENCES:
    - order_insights/models.py: AIOrderInsight, ShopSession
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20251204_000001'
down_revision = None
branch_labels = None
depends_on = None


customer_type_enum = sa.Enum('first-time', 'repeat', 'vip', name='customertypeenum')
insight_status_enum = sa.Enum('pending', 'completed', 'error', name='insightstatusenum')


def upgrade() -> None:
    op.create_table(
        'ai_order_insights',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('shop', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('order_name', sa.String(), nullable=False),
        sa.Column('insight_text', sa.Text(), nullable=False),
        sa.Column('followup_subject', sa.String(), nullable=True),
        sa.Column('followup_body', sa.Text(), nullable=True),
        sa.Column('customer_type', customer_type_enum, nullable=True),
        sa.Column('order_value', sa.Numeric(18, 4), nullable=True),
        sa.Column('status', insight_status_enum, nullable=False, server_default='completed'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop', 'order_id', name='uq_ai_order_insight_shop_order'),
    )
    op.create_index('ix_ai_order_insights_shop_created_at', 'ai_order_insights', ['shop', 'created_at'])
    op.create_index('ix_ai_order_insights_order_id', 'ai_order_insights', ['order_id'])

    op.create_table(
        'shop_sessions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('shop', sa.String(), nullable=False),
        sa.Column('access_token', sa.String(), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_sessions_shop', 'shop_sessions', ['shop'])


def downgrade() -> None:
    op.drop_index('ix_shop_sessions_shop', table_name='shop_sessions')
    op.drop_table('shop_sessions')

    op.drop_index('ix_ai_order_insights_order_id', table_name='ai_order_insights')
    op.drop_index('ix_ai_order_insights_shop_created_at', table_name='ai_order_insights')
    op.drop_table('ai_order_insights')

    insight_status_enum.drop(op.get_bind(), checkfirst=True)
    customer_type_enum.drop(op.get_bind(), checkfirst=True)
