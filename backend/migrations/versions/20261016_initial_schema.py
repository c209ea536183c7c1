"""initial schema

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16 00:00:00.000000

Creates the complete BarFlow schema:
- users / session_tokens: authentication
- products: bar catalog
- shift_sessions: cash register shifts with inventory snapshots
- credit_customers / credit_transactions: customer tabs (fiado)
- fixed_expenses / work_shifts / purchases: back-office accounting
- pos_sales / pos_sale_items / pos_payments: quick sale checkout
- drawer_logs / drawer_alerts: cash drawer audit trail
- app_config: singleton settings row
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261016_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # products
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('quick_sale', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_is_active', 'products', ['is_active'])
    op.create_index('ix_products_barcode', 'products', ['barcode'])
    op.create_index('ix_products_active_order', 'products', ['is_active', 'display_order'])

    # ============================================================================
    # shift_sessions
    # ============================================================================
    op.create_table(
        'shift_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('opened_by_user_id', sa.Integer(), nullable=False),
        sa.Column('closed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('initial_inventory', sa.JSON(), nullable=False),
        sa.Column('final_inventory', sa.JSON(), nullable=True),
        sa.Column('sales_report', sa.JSON(), nullable=True),
        sa.Column('real_cash_cents', sa.Integer(), nullable=True),
        sa.Column('closing_observation', sa.Text(), nullable=True),
        sa.Column('audit_log', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['opened_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['closed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shift_sessions_opened_by_user_id', 'shift_sessions', ['opened_by_user_id'])
    op.create_index('ix_shift_sessions_status', 'shift_sessions', ['status'])
    op.create_index('ix_shift_sessions_opened_at', 'shift_sessions', ['opened_at'])

    # ============================================================================
    # credit_customers / credit_transactions
    # ============================================================================
    op.create_table(
        'credit_customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('document_id', sa.String(length=32), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('max_limit_cents', sa.Integer(), nullable=False),
        sa.Column('current_used_cents', sa.Integer(), nullable=False),
        sa.Column('observations', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_credit_customers_is_active', 'credit_customers', ['is_active'])

    op.create_table(
        'credit_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('employee_name', sa.String(length=128), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('observation', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['credit_customers.id']),
        sa.ForeignKeyConstraint(['employee_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_credit_transactions_customer_id', 'credit_transactions', ['customer_id'])
    op.create_index('ix_credit_transactions_employee_id', 'credit_transactions', ['employee_id'])
    op.create_index('ix_credit_transactions_date', 'credit_transactions', ['date'])
    op.create_index('ix_credit_transactions_customer_date', 'credit_transactions', ['customer_id', 'date'])

    # ============================================================================
    # accounting: fixed_expenses / work_shifts / purchases
    # ============================================================================
    op.create_table(
        'fixed_expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_day', sa.String(length=32), nullable=False),
        sa.Column('type', sa.String(length=24), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'work_shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('employee_name', sa.String(length=128), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('hours_worked', sa.Float(), nullable=False),
        sa.Column('hourly_rate_cents', sa.Integer(), nullable=False),
        sa.Column('surcharges_cents', sa.Integer(), nullable=False),
        sa.Column('total_pay_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_work_shifts_employee_id', 'work_shifts', ['employee_id'])
    op.create_index('ix_work_shifts_status', 'work_shifts', ['status'])
    op.create_index('ix_work_shifts_employee_date', 'work_shifts', ['employee_id', 'date'])

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('product_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.Column('total_cost_cents', sa.Integer(), nullable=False),
        sa.Column('observations', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchases_date', 'purchases', ['date'])

    # ============================================================================
    # POS: pos_sales / pos_sale_items / pos_payments
    # ============================================================================
    op.create_table(
        'pos_sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_session_id', sa.Integer(), nullable=True),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('employee_name', sa.String(length=128), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('tip_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('cash_received_cents', sa.Integer(), nullable=True),
        sa.Column('change_cents', sa.Integer(), nullable=True),
        sa.Column('drawer_opened', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shift_session_id'], ['shift_sessions.id']),
        sa.ForeignKeyConstraint(['employee_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pos_sales_shift_session_id', 'pos_sales', ['shift_session_id'])
    op.create_index('ix_pos_sales_employee_id', 'pos_sales', ['employee_id'])
    op.create_index('ix_pos_sales_created_at', 'pos_sales', ['created_at'])

    op.create_table(
        'pos_sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['pos_sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pos_sale_items_sale_id', 'pos_sale_items', ['sale_id'])
    op.create_index('ix_pos_sale_items_product_id', 'pos_sale_items', ['product_id'])

    op.create_table(
        'pos_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['pos_sales.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pos_payments_sale_id', 'pos_payments', ['sale_id'])

    # ============================================================================
    # cash drawer: drawer_logs / drawer_alerts
    # ============================================================================
    op.create_table(
        'drawer_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('event_type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('user_name', sa.String(length=128), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('is_authorized', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('simulated', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['pos_sales.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_drawer_logs_date', 'drawer_logs', ['date'])
    op.create_index('ix_drawer_logs_user_id', 'drawer_logs', ['user_id'])
    op.create_index('ix_drawer_logs_sale_id', 'drawer_logs', ['sale_id'])

    op.create_table(
        'drawer_alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('severity', sa.String(length=16), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('acknowledged', sa.Boolean(), nullable=False),
        sa.Column('acknowledged_by_user_id', sa.Integer(), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['acknowledged_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_drawer_alerts_date', 'drawer_alerts', ['date'])
    op.create_index('ix_drawer_alerts_type', 'drawer_alerts', ['type'])
    op.create_index('ix_drawer_alerts_acknowledged', 'drawer_alerts', ['acknowledged'])

    # ============================================================================
    # app_config: singleton settings row
    # ============================================================================
    op.create_table(
        'app_config',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('bar_name', sa.String(length=128), nullable=False),
        sa.Column('last_export_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cash_drawer_enabled', sa.Boolean(), nullable=False),
        sa.Column('cash_drawer_port', sa.String(length=64), nullable=True),
        sa.Column('cash_drawer_baud_rate', sa.Integer(), nullable=False),
        sa.Column('inventory_base', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    op.drop_table('app_config')
    op.drop_table('drawer_alerts')
    op.drop_table('drawer_logs')
    op.drop_table('pos_payments')
    op.drop_table('pos_sale_items')
    op.drop_table('pos_sales')
    op.drop_table('purchases')
    op.drop_table('work_shifts')
    op.drop_table('fixed_expenses')
    op.drop_table('credit_transactions')
    op.drop_table('credit_customers')
    op.drop_table('shift_sessions')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('users')
