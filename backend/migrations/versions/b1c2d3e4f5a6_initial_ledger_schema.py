"""initial ledger schema

Revision ID: b1c2d3e4f5a6
Revises:
Create Date: 2026-10-19 00:00:00.000000

This migration creates the complete back-office ledger schema:
- restaurants: tenant root with opening balances per payment method
- customers, sales: supporting entities referenced by the ledgers
- debts, debt_payments: customer receivables
- bank_transactions: money-movement journal (1:1 links to sale / debt payment)
- expenses, expense_payments: approval-gated liabilities
- inventory_items, stock_movements, production_logs: stock ledger
- stock_reconciliations, reconciliation_items: physical counts
- inventory_transfers: inter-restaurant stock moves
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b1c2d3e4f5a6'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def upgrade():
    # ============================================================================
    # restaurants
    # ============================================================================
    op.create_table(
        'restaurants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('initial_cash_balance', sa.Integer(), nullable=False),
        sa.Column('initial_orange_balance', sa.Integer(), nullable=False),
        sa.Column('initial_card_balance', sa.Integer(), nullable=False),
        sa.Column('stock_deduction_mode', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('credit_limit', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_restaurant_id', 'customers', ['restaurant_id'])
    op.create_index('ix_customers_restaurant_name', 'customers', ['restaurant_id', 'name'])

    # ============================================================================
    # sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_gnf', sa.Integer(), nullable=False),
        sa.Column('cash_gnf', sa.Integer(), nullable=False),
        sa.Column('orange_money_gnf', sa.Integer(), nullable=False),
        sa.Column('card_gnf', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_by_name', sa.String(length=255), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_restaurant_id', 'sales', ['restaurant_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_restaurant_date', 'sales', ['restaurant_id', 'date'])

    # ============================================================================
    # debts / debt_payments
    # ============================================================================
    op.create_table(
        'debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('principal_amount', sa.Integer(), nullable=False),
        sa.Column('paid_amount', sa.Integer(), nullable=False),
        sa.Column('remaining_amount', sa.Integer(), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_debts_restaurant_id', 'debts', ['restaurant_id'])
    op.create_index('ix_debts_sale_id', 'debts', ['sale_id'])
    op.create_index('ix_debts_restaurant_status', 'debts', ['restaurant_id', 'status'])
    op.create_index('ix_debts_customer_status', 'debts', ['customer_id', 'status'])

    op.create_table(
        'debt_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('debt_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('receipt_number', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('received_by', sa.String(length=64), nullable=True),
        sa.Column('received_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['debt_id'], ['debts.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_debt_payments_restaurant_id', 'debt_payments', ['restaurant_id'])
    op.create_index('ix_debt_payments_debt_id', 'debt_payments', ['debt_id'])

    # ============================================================================
    # bank_transactions: money-movement journal
    # ============================================================================
    op.create_table(
        'bank_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('bank_ref', sa.String(length=64), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('debt_payment_id', sa.Integer(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmed_by', sa.String(length=64), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['debt_payment_id'], ['debt_payments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_bank_transactions_sale'),
        sa.UniqueConstraint('debt_payment_id', name='uq_bank_transactions_debt_payment'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bank_transactions_restaurant_id', 'bank_transactions', ['restaurant_id'])
    op.create_index('ix_bank_transactions_date', 'bank_transactions', ['date'])
    op.create_index('ix_bank_transactions_status', 'bank_transactions', ['status'])
    op.create_index('ix_bank_tx_restaurant_status_date', 'bank_transactions', ['restaurant_id', 'status', 'date'])

    # ============================================================================
    # expenses / expense_payments
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('category_name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('amount_gnf', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_by_name', sa.String(length=255), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_paid_amount', sa.Integer(), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('fully_paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_restaurant_id', 'expenses', ['restaurant_id'])
    op.create_index('ix_expenses_status', 'expenses', ['status'])
    op.create_index('ix_expenses_restaurant_status', 'expenses', ['restaurant_id', 'status'])

    op.create_table(
        'expense_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('expense_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('bank_transaction_id', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('paid_by', sa.String(length=64), nullable=True),
        sa.Column('paid_by_name', sa.String(length=255), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id']),
        sa.ForeignKeyConstraint(['bank_transaction_id'], ['bank_transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bank_transaction_id', name='uq_expense_payments_bank_tx'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expense_payments_expense_id', 'expense_payments', ['expense_id'])

    # ============================================================================
    # inventory_items / production_logs / stock_movements: stock ledger
    # ============================================================================
    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('current_stock', sa.Float(), nullable=False),
        sa.Column('min_stock', sa.Float(), nullable=False),
        sa.Column('reorder_point', sa.Float(), nullable=False),
        sa.Column('unit_cost_gnf', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_items_restaurant_id', 'inventory_items', ['restaurant_id'])
    op.create_index('ix_inventory_items_restaurant_name', 'inventory_items', ['restaurant_id', 'name'])
    op.create_index('ix_inventory_items_restaurant_active', 'inventory_items', ['restaurant_id', 'is_active'])

    op.create_table(
        'production_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('ingredient_details', sa.JSON(), nullable=False),
        sa.Column('estimated_cost_gnf', sa.Integer(), nullable=False),
        sa.Column('preparation_status', sa.String(length=16), nullable=False),
        sa.Column('stock_deducted', sa.Boolean(), nullable=False),
        sa.Column('stock_deducted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_production_logs_restaurant_id', 'production_logs', ['restaurant_id'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_cost', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('production_log_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id']),
        sa.ForeignKeyConstraint(['production_log_id'], ['production_logs.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_restaurant_id', 'stock_movements', ['restaurant_id'])
    op.create_index('ix_stock_movements_item_id', 'stock_movements', ['item_id'])
    op.create_index('ix_stock_movements_production_log_id', 'stock_movements', ['production_log_id'])
    op.create_index('ix_stock_movements_item_created', 'stock_movements', ['item_id', 'created_at'])
    op.create_index('ix_stock_movements_restaurant_type', 'stock_movements', ['restaurant_id', 'type'])

    # ============================================================================
    # stock_reconciliations / reconciliation_items
    # ============================================================================
    op.create_table(
        'stock_reconciliations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submitted_by', sa.String(length=64), nullable=True),
        sa.Column('submitted_by_name', sa.String(length=255), nullable=True),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_by_name', sa.String(length=255), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_reconciliations_restaurant_id', 'stock_reconciliations', ['restaurant_id'])
    op.create_index('ix_stock_reconciliations_status', 'stock_reconciliations', ['status'])
    op.create_index('ix_stock_reconciliations_created_at', 'stock_reconciliations', ['created_at'])
    op.create_index(
        'ix_stock_recon_restaurant_status_created', 'stock_reconciliations',
        ['restaurant_id', 'status', 'created_at'],
    )

    op.create_table(
        'reconciliation_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reconciliation_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('system_stock', sa.Float(), nullable=False),
        sa.Column('physical_count', sa.Float(), nullable=False),
        sa.Column('variance', sa.Float(), nullable=False),
        sa.Column('adjustment_applied', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['reconciliation_id'], ['stock_reconciliations.id']),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reconciliation_id', 'inventory_item_id', name='uq_recon_items_recon_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_reconciliation_items_reconciliation_id', 'reconciliation_items', ['reconciliation_id'])

    # ============================================================================
    # inventory_transfers
    # ============================================================================
    op.create_table(
        'inventory_transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('source_restaurant_id', sa.Integer(), nullable=False),
        sa.Column('target_restaurant_id', sa.Integer(), nullable=False),
        sa.Column('source_item_id', sa.Integer(), nullable=False),
        sa.Column('target_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['source_restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['target_restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['source_item_id'], ['inventory_items.id']),
        sa.ForeignKeyConstraint(['target_item_id'], ['inventory_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_transfers_source', 'inventory_transfers', ['source_restaurant_id', 'created_at'])
    op.create_index('ix_inventory_transfers_target', 'inventory_transfers', ['target_restaurant_id', 'created_at'])


def downgrade():
    op.drop_table('inventory_transfers')
    op.drop_table('reconciliation_items')
    op.drop_table('stock_reconciliations')
    op.drop_table('stock_movements')
    op.drop_table('production_logs')
    op.drop_table('inventory_items')
    op.drop_table('expense_payments')
    op.drop_table('expenses')
    op.drop_table('bank_transactions')
    op.drop_table('debt_payments')
    op.drop_table('debts')
    op.drop_table('sales')
    op.drop_table('customers')
    op.drop_table('restaurants')
