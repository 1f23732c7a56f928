"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUM_TYPES = {
    'entity_type': ('retailer', 'supplier'),
    'risk_tier': ('A', 'B', 'C', 'D'),
    'loan_status': ('pending', 'pending_review', 'approved', 'denied', 'active', 'repaid', 'defaulted'),
    'decision_outcome': ('approved', 'denied', 'deferred'),
    'decision_reason': (
        'rule_matched', 'blacklisted', 'no_matching_rule',
        'daily_limit_exceeded', 'risk_allocation_exceeded',
    ),
    'alert_type': ('payment', 'risk', 'opportunity', 'system'),
    'alert_priority': ('critical', 'high', 'medium', 'low'),
    'alert_condition_type': ('overdue_days', 'amount_threshold', 'risk_level', 'collection_rate'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(name=name, create_type=False)


def _audit_columns() -> list:
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # Create ENUM types
    for name, values in ENUM_TYPES.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    # Create lenders table
    op.create_table(
        'lenders',
        *_audit_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    )
    op.create_index('ix_lenders_name', 'lenders', ['name'], unique=True)
    op.create_index('ix_lenders_active', 'lenders', ['active'])

    # Create suppliers table
    op.create_table(
        'suppliers',
        *_audit_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_preferred', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('rating', sa.Numeric(precision=3, scale=2), nullable=True),
    )
    op.create_index('ix_suppliers_name', 'suppliers', ['name'])

    # Create auto_lending_rules table
    op.create_table(
        'auto_lending_rules',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('rule_name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('min_loan_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('max_loan_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('preferred_goods_categories', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('preferred_regions', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('min_credit_score', sa.Integer(), nullable=True),
        sa.Column('daily_deployment_limit', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('risk_allocation', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('auto_approve_trusted_suppliers', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.ForeignKeyConstraint(['lender_id'], ['lenders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_auto_lending_rules_lender_id', 'auto_lending_rules', ['lender_id'])

    # Create blacklisted_entities table
    op.create_table(
        'blacklisted_entities',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('entity_type', _enum('entity_type'), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('entity_name', sa.String(length=255), nullable=True),
        sa.Column('blacklist_reason', sa.Text(), nullable=True),
        sa.Column('blacklisted_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['lender_id'], ['lenders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_blacklisted_entities_lender_id', 'blacklisted_entities', ['lender_id'])
    op.create_index('ix_blacklisted_entities_entity_id', 'blacklisted_entities', ['entity_id'])

    # Create loans table
    op.create_table(
        'loans',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('retailer_id', sa.String(length=64), nullable=False),
        sa.Column('retailer_name', sa.String(length=255), nullable=True),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('goods_category', sa.String(length=100), nullable=False),
        sa.Column('region', sa.String(length=100), nullable=False),
        sa.Column('loan_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('daily_payment', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('credit_score', sa.Integer(), nullable=True),
        sa.Column('risk_tier', _enum('risk_tier'), nullable=True),
        sa.Column('status', _enum('loan_status'), nullable=False, server_default='pending'),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['lender_id'], ['lenders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_loans_lender_id', 'loans', ['lender_id'])
    op.create_index('ix_loans_retailer_id', 'loans', ['retailer_id'])
    op.create_index('ix_loans_supplier_id', 'loans', ['supplier_id'])
    op.create_index('ix_loans_status', 'loans', ['status'])

    # Create daily_payments table
    op.create_table(
        'daily_payments',
        *_audit_columns(),
        sa.Column('loan_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('is_received', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.ForeignKeyConstraint(['loan_id'], ['loans.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_daily_payments_loan_id', 'daily_payments', ['loan_id'])
    op.create_index('ix_daily_payments_payment_date', 'daily_payments', ['payment_date'])

    # Create deployment_buckets table (one locked counter row per lender/rule/day)
    op.create_table(
        'deployment_buckets',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('rule_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('calendar_day', sa.Date(), nullable=False),
        sa.Column('amount_reserved', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0.00'),
        sa.Column('tier_amounts', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.UniqueConstraint('lender_id', 'rule_id', 'calendar_day', name='uq_deployment_bucket'),
    )
    op.create_index('ix_deployment_buckets_lender_id', 'deployment_buckets', ['lender_id'])
    op.create_index('ix_deployment_buckets_rule_id', 'deployment_buckets', ['rule_id'])

    # Create deployment_ledger_entries table (append-only reservation journal)
    op.create_table(
        'deployment_ledger_entries',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('rule_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('risk_tier', sa.String(length=1), nullable=True),
        sa.Column('calendar_day', sa.Date(), nullable=False),
        sa.Column('amount_reserved', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('loan_request_id', postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index('ix_deployment_ledger_entries_lender_id', 'deployment_ledger_entries', ['lender_id'])
    op.create_index('ix_deployment_ledger_entries_calendar_day', 'deployment_ledger_entries', ['calendar_day'])

    # Create auto_lending_decisions table
    op.create_table(
        'auto_lending_decisions',
        *_audit_columns(),
        sa.Column('loan_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('outcome', _enum('decision_outcome'), nullable=False),
        sa.Column('reason', _enum('decision_reason'), nullable=False),
        sa.Column('matched_rule_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(['loan_id'], ['loans.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['matched_rule_id'], ['auto_lending_rules.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_auto_lending_decisions_loan_id', 'auto_lending_decisions', ['loan_id'])
    op.create_index('ix_auto_lending_decisions_lender_id', 'auto_lending_decisions', ['lender_id'])
    op.create_index('ix_auto_lending_decisions_outcome', 'auto_lending_decisions', ['outcome'])

    # Create alert_rules table
    op.create_table(
        'alert_rules',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('rule_name', sa.String(length=255), nullable=False),
        sa.Column('condition_type', _enum('alert_condition_type'), nullable=False),
        sa.Column('condition_value', sa.String(length=64), nullable=False),
        sa.Column('alert_type', _enum('alert_type'), nullable=False),
        sa.Column('priority', _enum('alert_priority'), nullable=False),
        sa.Column('notification_channels', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['lender_id'], ['lenders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_alert_rules_lender_id', 'alert_rules', ['lender_id'])

    # Create alerts table
    op.create_table(
        'alerts',
        *_audit_columns(),
        sa.Column('lender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('alert_rule_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('type', _enum('alert_type'), nullable=False),
        sa.Column('priority', _enum('alert_priority'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_entity', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('notification_channels', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('dedup_key', sa.String(length=255), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.ForeignKeyConstraint(['lender_id'], ['lenders.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('dedup_key', name='uq_alerts_dedup_key'),
    )
    op.create_index('ix_alerts_lender_id', 'alerts', ['lender_id'])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key constraints)
    op.drop_table('alerts')
    op.drop_table('alert_rules')
    op.drop_table('auto_lending_decisions')
    op.drop_table('deployment_ledger_entries')
    op.drop_table('deployment_buckets')
    op.drop_table('daily_payments')
    op.drop_table('loans')
    op.drop_table('blacklisted_entities')
    op.drop_table('auto_lending_rules')
    op.drop_table('suppliers')
    op.drop_table('lenders')

    # Drop ENUM types
    for name in reversed(list(ENUM_TYPES)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
