"""inventory ledger: catalog, locations, stock, documents and moves

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


QTY = sa.Numeric(14, 3)


def _document_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reference', sa.String(length=30), nullable=False, unique=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('completed_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
    ]


def _line_columns(parent_table: str, parent_col: str, requested: str, actual: str, actual_nullable=True):
    return [
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column(parent_col, sa.Integer(), sa.ForeignKey(f'{parent_table}.id', ondelete='CASCADE'), nullable=False),
        sa.Column(requested, QTY, nullable=False),
        sa.Column(actual, QTY, nullable=actual_nullable),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=180), nullable=False),
        sa.Column('full_name', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'warehouses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False, unique=True),
        sa.Column('code', sa.String(length=20), nullable=False, unique=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=30), nullable=False, unique=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('capacity', QTY, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('warehouse_id', 'name', name='uq_location_warehouse_name'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('sku', sa.String(length=60), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('unit_of_measure', sa.String(length=20), nullable=False),
        sa.Column('cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('reorder_point', QTY, nullable=False),
        sa.Column('reorder_quantity', QTY, nullable=False),
        sa.Column('lead_time', sa.Integer(), nullable=False),
        sa.Column('supplier_name', sa.String(length=160), nullable=True),
        sa.Column('supplier_contact', sa.String(length=120), nullable=True),
        sa.Column('supplier_email', sa.String(length=180), nullable=True),
        sa.Column('barcode', sa.String(length=60), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('cost >= 0', name='ck_product_cost_positive'),
        sa.CheckConstraint('price >= 0', name='ck_product_price_positive'),
    )

    op.create_table(
        'stock_levels',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('reserved', QTY, nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('product_id', 'location_id', name='uq_stock_level_product_location'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_level_quantity_positive'),
        sa.CheckConstraint('reserved >= 0', name='ck_stock_level_reserved_positive'),
    )
    op.create_index('ix_stock_level_location', 'stock_levels', ['location_id'])

    op.create_table(
        'stock_moves',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('source_location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=True),
        sa.Column('destination_location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=True),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('document_type', sa.String(length=20), nullable=False),
        sa.Column('document_id', sa.Integer(), nullable=False),
        sa.Column('document_reference', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_move_quantity_positive'),
    )
    op.create_index('ix_stock_move_product_date', 'stock_moves', ['product_id', 'date'])
    op.create_index('ix_stock_move_type_status', 'stock_moves', ['document_type', 'status'])
    op.create_index('ix_stock_move_date', 'stock_moves', ['date'])
    op.create_index('ix_stock_move_document', 'stock_moves', ['document_type', 'document_id'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('prefix', sa.String(length=10), nullable=False, unique=True),
        sa.Column('last_value', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # Documentos
    op.create_table(
        'receipts',
        *_document_columns(),
        sa.Column('supplier_name', sa.String(length=160), nullable=False),
        sa.Column('supplier_contact', sa.String(length=120), nullable=True),
        sa.Column('supplier_email', sa.String(length=180), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('destination_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
    )
    op.create_table(
        'deliveries',
        *_document_columns(),
        sa.Column('customer_name', sa.String(length=160), nullable=False),
        sa.Column('customer_contact', sa.String(length=120), nullable=True),
        sa.Column('customer_email', sa.String(length=180), nullable=True),
        sa.Column('customer_address', sa.String(length=255), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('source_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
    )
    op.create_table(
        'transfers',
        *_document_columns(),
        sa.Column('source_location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('destination_location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
        sa.CheckConstraint('source_location_id <> destination_location_id', name='ck_transfer_distinct_locations'),
    )
    op.create_table(
        'adjustments',
        *_document_columns(),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('reason', sa.String(length=30), nullable=False),
    )
    for table in ('receipts', 'deliveries', 'transfers', 'adjustments'):
        op.create_index(f'ix_{table}_status', table, ['status'])

    op.create_table(
        'receipt_lines',
        *_line_columns('receipts', 'receipt_id', 'ordered_quantity', 'received_quantity'),
    )
    op.create_table(
        'delivery_lines',
        *_line_columns('deliveries', 'delivery_id', 'ordered_quantity', 'delivered_quantity'),
    )
    op.create_table(
        'transfer_lines',
        *_line_columns('transfers', 'transfer_id', 'requested_quantity', 'transferred_quantity'),
    )
    op.create_table(
        'adjustment_lines',
        *_line_columns('adjustments', 'adjustment_id', 'system_quantity', 'counted_quantity', actual_nullable=False),
        sa.Column('difference', QTY, nullable=False),
    )
    for table, parent_col in (
        ('receipt_lines', 'receipt_id'),
        ('delivery_lines', 'delivery_id'),
        ('transfer_lines', 'transfer_id'),
        ('adjustment_lines', 'adjustment_id'),
    ):
        op.create_index(f'ix_{table}_product_id', table, ['product_id'])
        op.create_index(f'ix_{table}_{parent_col}', table, [parent_col])


def downgrade():
    for table in ('adjustment_lines', 'transfer_lines', 'delivery_lines', 'receipt_lines'):
        op.drop_table(table)
    for table in ('adjustments', 'transfers', 'deliveries', 'receipts'):
        op.drop_table(table)

    op.drop_table('document_sequences')
    op.drop_table('stock_moves')
    op.drop_table('stock_levels')
    op.drop_table('products')
    op.drop_table('locations')
    op.drop_table('warehouses')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
