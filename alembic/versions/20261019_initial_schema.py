"""Create deals, event_logs and notifications_queue tables

Revision ID: 20261019_initial_schema
Revises:
Create Date: 2026-10-19

deals.source_hash carries a UNIQUE index: it is the authoritative guard
against two identical submissions racing past the replay check.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '20261019_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'deals',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('company_name', sa.String(), nullable=False),
        sa.Column('website', sa.String(), nullable=False),
        sa.Column('sector', sa.String(), nullable=False),
        sa.Column('stage', sa.String(), nullable=False),
        sa.Column('geography', sa.String(), nullable=False),
        sa.Column('pitch', sa.Text(), nullable=False),
        sa.Column('website_key', sa.String(), nullable=False),
        sa.Column('source_hash', sa.String(64), nullable=False),
        sa.Column('normalized_payload', postgresql.JSONB(), nullable=True),
        sa.Column('memo', postgresql.JSONB(), nullable=True),
        sa.Column('fit_score', sa.Integer(), nullable=True),
        sa.Column('fit_reasoning', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('owner', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('Qualified', 'Review', 'Pass', 'LLM_Error')",
            name='ck_deals_status',
        ),
        sa.CheckConstraint(
            'fit_score >= 0 AND fit_score <= 100',
            name='ck_deals_fit_score',
        ),
    )
    op.create_index('ix_deals_source_hash', 'deals', ['source_hash'], unique=True)
    op.create_index('ix_deals_website_key', 'deals', ['website_key'], unique=False)
    op.create_index('ix_deals_status', 'deals', ['status'], unique=False)
    op.create_index('ix_deals_created_at', 'deals', ['created_at'], unique=False)

    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('deal_id', sa.Uuid(), nullable=True),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('source_hash', sa.String(64), nullable=True),
        sa.Column('payload', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_event_logs_event_type', 'event_logs', ['event_type'], unique=False)
    op.create_index('ix_event_logs_deal_id', 'event_logs', ['deal_id'], unique=False)

    op.create_table(
        'notifications_queue',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('deal_id', sa.Uuid(), nullable=True),
        sa.Column('channel', sa.String(), nullable=False, server_default='slack'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='SET NULL'),
    )
    # Partial index for the unsent-notification sweep
    op.create_index(
        'idx_notifications_queue_unsent',
        'notifications_queue',
        ['sent_at'],
        unique=False,
        postgresql_where=sa.text('sent_at IS NULL'),
    )


def downgrade():
    op.drop_index('idx_notifications_queue_unsent', table_name='notifications_queue')
    op.drop_table('notifications_queue')
    op.drop_index('ix_event_logs_deal_id', table_name='event_logs')
    op.drop_index('ix_event_logs_event_type', table_name='event_logs')
    op.drop_table('event_logs')
    op.drop_index('ix_deals_created_at', table_name='deals')
    op.drop_index('ix_deals_status', table_name='deals')
    op.drop_index('ix_deals_website_key', table_name='deals')
    op.drop_index('ix_deals_source_hash', table_name='deals')
    op.drop_table('deals')
