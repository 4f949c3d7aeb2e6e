"""initial cylinder schema

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01 00:00:00.000000

Creates the full CylinderHub schema:
- users, session_tokens, security_events: authentication and audit
- document_sequences: per-day invoice numbering
- factories, customers, trucks: registries
- cylinders, cylinder_events: master data and append-only status history
- filling_lines, filling_batches, filling_details: filling sessions
- inspections: write-once inspection records
- sales, sale_items, sale_payments: invoices, cylinders sold, money received
- maintenance_records: repair attempts

Contended rows (cylinders, customers, trucks, lines, batches, sales) carry
version_id for optimistic concurrency.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20260301_initial'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def _version_id():
    return sa.Column('version_id', sa.Integer(), nullable=False, server_default='1')


def upgrade():
    # ============================================================================
    # users / session_tokens / security_events
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='VIEWER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_username', ['username'])
        batch_op.create_index('ix_users_role', ['role'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _created_at(),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_session_tokens_user_id', ['user_id'])
        batch_op.create_index('ix_session_tokens_token_hash', ['token_hash'], unique=True)
        batch_op.create_index('ix_session_tokens_expires_at', ['expires_at'])
        batch_op.create_index('ix_session_tokens_is_revoked', ['is_revoked'])
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'])

    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('security_events', schema=None) as batch_op:
        batch_op.create_index('ix_security_events_user_id', ['user_id'])
        batch_op.create_index('ix_security_events_event_type', ['event_type'])
        batch_op.create_index('ix_security_events_success', ['success'])
        batch_op.create_index('ix_security_events_user_type', ['user_id', 'event_type'])
        batch_op.create_index('ix_security_events_occurred', ['occurred_at'])

    # ============================================================================
    # document_sequences: invoice numbers restart per day
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('period_key', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'period_key', name='uq_doc_sequences_type_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])

    # ============================================================================
    # Registries
    # ============================================================================
    op.create_table(
        'factories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('contact_person', sa.String(length=128), nullable=True),
        sa.Column('contact_number', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('customer_type', sa.String(length=16), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('contact_person', sa.String(length=128), nullable=True),
        sa.Column('contact_number', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('payment_type', sa.String(length=16), nullable=False, server_default='CASH'),
        sa.Column('price_group', sa.String(length=32), nullable=True),
        sa.Column('credit_limit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _version_id(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_name', 'customers', ['name'])

    op.create_table(
        'trucks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('license_number', sa.String(length=32), nullable=False),
        sa.Column('truck_type', sa.String(length=64), nullable=True),
        sa.Column('owner', sa.String(length=128), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('driver_name', sa.String(length=128), nullable=True),
        sa.Column('driver_phone', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='AVAILABLE'),
        sa.Column('last_maintenance_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _version_id(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('license_number', name='uq_trucks_license_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('trucks', schema=None) as batch_op:
        batch_op.create_index('ix_trucks_license_number', ['license_number'])
        batch_op.create_index('ix_trucks_status', ['status'])

    # ============================================================================
    # cylinders / cylinder_events
    # ============================================================================
    op.create_table(
        'cylinders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('serial_number', sa.String(length=64), nullable=False),
        sa.Column('qr_code', sa.String(length=64), nullable=False),
        sa.Column('size_litres', sa.Float(), nullable=False),
        sa.Column('cylinder_type', sa.String(length=16), nullable=False, server_default='INDUSTRIAL'),
        sa.Column('gas_type', sa.String(length=32), nullable=True),
        sa.Column('working_pressure', sa.Float(), nullable=False),
        sa.Column('design_pressure', sa.Float(), nullable=False),
        sa.Column('original_number', sa.String(length=64), nullable=True),
        sa.Column('production_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('import_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('factory_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='EMPTY'),
        sa.Column('pre_inspection_status', sa.String(length=16), nullable=True),
        sa.Column('location', sa.String(length=16), nullable=False, server_default='FACTORY'),
        sa.Column('current_customer_id', sa.Integer(), nullable=True),
        sa.Column('current_truck_id', sa.Integer(), nullable=True),
        sa.Column('last_filled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_inspected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        _version_id(),
        sa.ForeignKeyConstraint(['factory_id'], ['factories.id'], ),
        sa.ForeignKeyConstraint(['current_customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['current_truck_id'], ['trucks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('serial_number', name='uq_cylinders_serial_number'),
        sa.UniqueConstraint('qr_code', name='uq_cylinders_qr_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cylinders', schema=None) as batch_op:
        batch_op.create_index('ix_cylinders_serial_number', ['serial_number'])
        batch_op.create_index('ix_cylinders_factory_id', ['factory_id'])
        batch_op.create_index('ix_cylinders_status', ['status'])
        batch_op.create_index('ix_cylinders_current_customer_id', ['current_customer_id'])
        batch_op.create_index('ix_cylinders_current_truck_id', ['current_truck_id'])
        batch_op.create_index('ix_cylinders_is_active', ['is_active'])
        batch_op.create_index('ix_cylinders_status_active', ['status', 'is_active'])

    # Append-only: one row per status transition
    op.create_table(
        'cylinder_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cylinder_id', sa.Integer(), nullable=False),
        sa.Column('from_status', sa.String(length=16), nullable=True),
        sa.Column('to_status', sa.String(length=16), nullable=False),
        sa.Column('trigger', sa.String(length=32), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['cylinder_id'], ['cylinders.id'], ),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cylinder_events', schema=None) as batch_op:
        batch_op.create_index('ix_cylinder_events_cylinder_id', ['cylinder_id'])
        batch_op.create_index('ix_cylinder_events_cylinder_occurred', ['cylinder_id', 'occurred_at'])

    # ============================================================================
    # Filling
    # ============================================================================
    op.create_table(
        'filling_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('factory_id', sa.Integer(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('cylinder_type', sa.String(length=16), nullable=False, server_default='INDUSTRIAL'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='IDLE'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _version_id(),
        sa.ForeignKeyConstraint(['factory_id'], ['factories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('filling_lines', schema=None) as batch_op:
        batch_op.create_index('ix_filling_lines_factory_id', ['factory_id'])
        batch_op.create_index('ix_filling_lines_status', ['status'])

    op.create_table(
        'filling_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('filling_line_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='IN_PROGRESS'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_by_user_id', sa.Integer(), nullable=True),
        sa.Column('ended_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _version_id(),
        sa.ForeignKeyConstraint(['filling_line_id'], ['filling_lines.id'], ),
        sa.ForeignKeyConstraint(['started_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['ended_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('filling_batches', schema=None) as batch_op:
        batch_op.create_index('ix_filling_batches_filling_line_id', ['filling_line_id'])
        batch_op.create_index('ix_filling_batches_status', ['status'])
        batch_op.create_index('ix_filling_batches_line_status', ['filling_line_id', 'status'])

    op.create_table(
        'filling_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('filling_batch_id', sa.Integer(), nullable=False),
        sa.Column('cylinder_id', sa.Integer(), nullable=False),
        sa.Column('initial_pressure', sa.Float(), nullable=True),
        sa.Column('final_pressure', sa.Float(), nullable=True),
        sa.Column('outcome', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('filled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('filled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['filling_batch_id'], ['filling_batches.id'], ),
        sa.ForeignKeyConstraint(['cylinder_id'], ['cylinders.id'], ),
        sa.ForeignKeyConstraint(['filled_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('filling_batch_id', 'cylinder_id', name='uq_filling_details_batch_cylinder'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('filling_details', schema=None) as batch_op:
        batch_op.create_index('ix_filling_details_filling_batch_id', ['filling_batch_id'])
        batch_op.create_index('ix_filling_details_cylinder_id', ['cylinder_id'])

    # ============================================================================
    # inspections: write-once
    # ============================================================================
    op.create_table(
        'inspections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cylinder_id', sa.Integer(), nullable=False),
        sa.Column('inspector_user_id', sa.Integer(), nullable=True),
        sa.Column('inspected_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('pressure_reading', sa.Float(), nullable=True),
        sa.Column('visual_check', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('valve_check', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('result', sa.String(length=16), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['cylinder_id'], ['cylinders.id'], ),
        sa.ForeignKeyConstraint(['inspector_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inspections', schema=None) as batch_op:
        batch_op.create_index('ix_inspections_cylinder_id', ['cylinder_id'])
        batch_op.create_index('ix_inspections_inspector_user_id', ['inspector_user_id'])
        batch_op.create_index('ix_inspections_result', ['result'])
        batch_op.create_index('ix_inspections_cylinder_inspected', ['cylinder_id', 'inspected_at'])

    # ============================================================================
    # Sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('seller_user_id', sa.Integer(), nullable=True),
        sa.Column('sale_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivery_type', sa.String(length=16), nullable=False, server_default='PICKUP'),
        sa.Column('truck_id', sa.Integer(), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_adjustment_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='UNPAID'),
        sa.Column('delivery_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('customer_signature', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('dispatched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancel_reason', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _version_id(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['seller_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['truck_id'], ['trucks.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number', name='uq_sales_invoice_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_invoice_number', ['invoice_number'])
        batch_op.create_index('ix_sales_customer_id', ['customer_id'])
        batch_op.create_index('ix_sales_seller_user_id', ['seller_user_id'])
        batch_op.create_index('ix_sales_truck_id', ['truck_id'])
        batch_op.create_index('ix_sales_payment_status', ['payment_status'])
        batch_op.create_index('ix_sales_delivery_status', ['delivery_status'])
        batch_op.create_index('ix_sales_customer_status', ['customer_id', 'delivery_status'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('cylinder_id', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_return', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='RESERVED'),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['cylinder_id'], ['cylinders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index('ix_sale_items_sale_id', ['sale_id'])
        batch_op.create_index('ix_sale_items_cylinder_id', ['cylinder_id'])
        batch_op.create_index('ix_sale_items_sale_cylinder', ['sale_id', 'cylinder_id'])

    op.create_table(
        'sale_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False, server_default='CASH'),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('received_by_user_id', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['received_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_payments_sale_id', 'sale_payments', ['sale_id'])

    # ============================================================================
    # maintenance_records
    # ============================================================================
    op.create_table(
        'maintenance_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cylinder_id', sa.Integer(), nullable=False),
        sa.Column('technician_user_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('issue_description', sa.Text(), nullable=False),
        sa.Column('action_taken', sa.Text(), nullable=True),
        sa.Column('cost_cents', sa.Integer(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['cylinder_id'], ['cylinders.id'], ),
        sa.ForeignKeyConstraint(['technician_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['completed_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('maintenance_records', schema=None) as batch_op:
        batch_op.create_index('ix_maintenance_records_cylinder_id', ['cylinder_id'])
        batch_op.create_index('ix_maintenance_records_status', ['status'])
        batch_op.create_index('ix_maintenance_cylinder_status', ['cylinder_id', 'status'])


def downgrade():
    for table in (
        'maintenance_records',
        'sale_payments',
        'sale_items',
        'sales',
        'inspections',
        'filling_details',
        'filling_batches',
        'filling_lines',
        'cylinder_events',
        'cylinders',
        'trucks',
        'customers',
        'factories',
        'document_sequences',
        'security_events',
        'session_tokens',
        'users',
    ):
        op.drop_table(table)
