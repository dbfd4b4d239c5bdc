"""initial schema

Revision ID: 20261016_initial_schema
Revises:
Create Date: 2026-10-16 00:00:00.000000

Creates the bar operations schema:
- inventory_items: stock per location (JSON map)
- purchase_orders / purchase_order_lines: supplier orders and their lines
- inventory_records / inventory_record_lines: append-only snapshot and analysis history
- cash_sessions: register sessions (income, expenses, payment split, hours)
- income_sources: operator-editable income source registry
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261016_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # inventory_items
    # ============================================================================
    op.create_table(
        'inventory_items',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('unit', sa.String(length=64), nullable=False),
        sa.Column('stock_by_location', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_inventory_items'),
    )
    op.create_index('ix_inventory_items_name', 'inventory_items', ['name'])
    op.create_index('ix_inventory_items_category_name', 'inventory_items', ['category', 'name'])

    # ============================================================================
    # purchase_orders / purchase_order_lines
    # ============================================================================
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('supplier_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('total_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_orders'),
    )
    op.create_index('ix_purchase_orders_order_date', 'purchase_orders', ['order_date'])
    op.create_index('ix_purchase_orders_supplier_name', 'purchase_orders', ['supplier_name'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_status_order_date', 'purchase_orders', ['status', 'order_date'])

    # inventory_item_id is deliberately not a foreign key: deleting an item
    # must leave order history intact
    op.create_table(
        'purchase_order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('inventory_item_id', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('cost_at_time_of_purchase', sa.Float(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['order_id'], ['purchase_orders.id'],
                                name='fk_purchase_order_lines_order_id_purchase_orders'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_order_lines'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_order_lines_order_id', 'purchase_order_lines', ['order_id'])
    op.create_index('ix_purchase_order_lines_inventory_item_id', 'purchase_order_lines', ['inventory_item_id'])

    # ============================================================================
    # inventory_records / inventory_record_lines (append-only history)
    # ============================================================================
    op.create_table(
        'inventory_records',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_inventory_records'),
    )
    op.create_index('ix_inventory_records_date', 'inventory_records', ['date'])
    op.create_index('ix_inventory_records_type', 'inventory_records', ['type'])

    op.create_table(
        'inventory_record_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('unit', sa.String(length=64), nullable=True),
        sa.Column('current_stock', sa.Float(), nullable=True),
        sa.Column('pending_stock', sa.Float(), nullable=True),
        sa.Column('initial_stock', sa.Float(), nullable=True),
        sa.Column('end_stock', sa.Float(), nullable=True),
        sa.Column('consumption', sa.Float(), nullable=True),
        sa.Column('stock_by_location_snapshot', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['record_id'], ['inventory_records.id'],
                                name='fk_inventory_record_lines_record_id_inventory_records'),
        sa.PrimaryKeyConstraint('id', name='pk_inventory_record_lines'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_record_lines_record_id', 'inventory_record_lines', ['record_id'])
    op.create_index('ix_inventory_record_lines_item_id', 'inventory_record_lines', ['item_id'])

    # ============================================================================
    # cash_sessions / income_sources
    # ============================================================================
    op.create_table(
        'cash_sessions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('income', sa.JSON(), nullable=False),
        sa.Column('expenses', sa.JSON(), nullable=False),
        sa.Column('payment_breakdown', sa.JSON(), nullable=False),
        sa.Column('worked_hours', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_cash_sessions'),
    )
    op.create_index('ix_cash_sessions_date', 'cash_sessions', ['date'])

    op.create_table(
        'income_sources',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=128), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id', name='pk_income_sources'),
    )


def downgrade():
    op.drop_table('income_sources')
    op.drop_index('ix_cash_sessions_date', table_name='cash_sessions')
    op.drop_table('cash_sessions')

    op.drop_index('ix_inventory_record_lines_item_id', table_name='inventory_record_lines')
    op.drop_index('ix_inventory_record_lines_record_id', table_name='inventory_record_lines')
    op.drop_table('inventory_record_lines')
    op.drop_index('ix_inventory_records_type', table_name='inventory_records')
    op.drop_index('ix_inventory_records_date', table_name='inventory_records')
    op.drop_table('inventory_records')

    op.drop_index('ix_purchase_order_lines_inventory_item_id', table_name='purchase_order_lines')
    op.drop_index('ix_purchase_order_lines_order_id', table_name='purchase_order_lines')
    op.drop_table('purchase_order_lines')
    op.drop_index('ix_purchase_orders_status_order_date', table_name='purchase_orders')
    op.drop_index('ix_purchase_orders_status', table_name='purchase_orders')
    op.drop_index('ix_purchase_orders_supplier_name', table_name='purchase_orders')
    op.drop_index('ix_purchase_orders_order_date', table_name='purchase_orders')
    op.drop_table('purchase_orders')

    op.drop_index('ix_inventory_items_category_name', table_name='inventory_items')
    op.drop_index('ix_inventory_items_name', table_name='inventory_items')
    op.drop_table('inventory_items')
