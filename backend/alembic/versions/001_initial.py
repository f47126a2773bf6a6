"""Create inventory, ledger, reservation, alert, report and archive tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'inventory',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reorder_level', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_inventory_id', 'inventory', ['id'])
    op.create_index('ix_inventory_item_id', 'inventory', ['item_id'], unique=True)
    op.create_index('ix_inventory_category', 'inventory', ['category'])
    op.create_index('ix_inventory_status', 'inventory', ['status'])
    op.create_index('ix_inventory_stock_reorder_level', 'inventory', ['stock', 'reorder_level'])

    op.create_table(
        'stock_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('transaction_type', sa.String(length=20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_stock', sa.Integer(), nullable=False),
        sa.Column('new_stock', sa.Integer(), nullable=False),
        sa.Column('reference_number', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['item_id'], ['inventory.item_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_transactions_item_id', 'stock_transactions', ['item_id'])
    op.create_index('ix_stock_transactions_transaction_type', 'stock_transactions', ['transaction_type'])
    op.create_index('ix_stock_transactions_reference_number', 'stock_transactions', ['reference_number'])
    op.create_index('ix_stock_transactions_created_at', 'stock_transactions', ['created_at'])

    # Priority and urgency columns are added in 002
    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('job_order_number', sa.String(length=100), nullable=True),
        sa.Column('requested_by', sa.String(length=100), nullable=False),
        sa.Column('approved_by', sa.String(length=100), nullable=True),
        sa.Column('requested_date', sa.DateTime(), nullable=False),
        sa.Column('approved_date', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['item_id'], ['inventory.item_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reservations_status', 'reservations', ['status'])
    op.create_index('ix_reservations_job_order_number', 'reservations', ['job_order_number'])
    op.create_index('ix_reservations_requested_date', 'reservations', ['requested_date'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.Column('urgency', sa.String(length=20), nullable=False, server_default='medium'),
        sa.Column('alert_type', sa.String(length=20), nullable=False, server_default='low_stock'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('acknowledged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('acknowledged_by', sa.String(length=100), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_alerts_item_id_acknowledged', 'alerts', ['item_id', 'acknowledged'])
    op.create_index('ix_alerts_urgency_acknowledged', 'alerts', ['urgency', 'acknowledged'])
    op.create_index('ix_alerts_created_at', 'alerts', ['created_at'])

    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_type', sa.String(length=30), nullable=False),
        sa.Column('generated_date', sa.DateTime(), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=False),
        sa.Column('data_summary', sa.JSON(), nullable=False),
        sa.Column('forecast_period', sa.Integer(), nullable=True),
        sa.Column('forecast_value', sa.Numeric(15, 2), nullable=True),
        sa.Column('confidence_level', sa.Numeric(5, 2), nullable=True),
        sa.Column('generated_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reports_report_type_report_date', 'reports', ['report_type', 'report_date'])
    op.create_index('ix_reports_generated_date', 'reports', ['generated_date'])

    op.create_table(
        'archives',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=20), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=30), nullable=False),
        sa.Column('old_data', sa.JSON(), nullable=True),
        sa.Column('new_data', sa.JSON(), nullable=True),
        sa.Column('user_id', sa.String(length=100), nullable=True),
        sa.Column('reference_number', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('archived_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_archives_entity_type_entity_id', 'archives', ['entity_type', 'entity_id'])
    op.create_index('ix_archives_archived_date', 'archives', ['archived_date'])
    op.create_index('ix_archives_action', 'archives', ['action'])
    op.create_index('ix_archives_reference_number', 'archives', ['reference_number'])


def downgrade() -> None:
    op.drop_index('ix_archives_reference_number', table_name='archives')
    op.drop_index('ix_archives_action', table_name='archives')
    op.drop_index('ix_archives_archived_date', table_name='archives')
    op.drop_index('ix_archives_entity_type_entity_id', table_name='archives')
    op.drop_table('archives')

    op.drop_index('ix_reports_generated_date', table_name='reports')
    op.drop_index('ix_reports_report_type_report_date', table_name='reports')
    op.drop_table('reports')

    op.drop_index('ix_alerts_created_at', table_name='alerts')
    op.drop_index('ix_alerts_urgency_acknowledged', table_name='alerts')
    op.drop_index('ix_alerts_item_id_acknowledged', table_name='alerts')
    op.drop_table('alerts')

    op.drop_index('ix_reservations_requested_date', table_name='reservations')
    op.drop_index('ix_reservations_job_order_number', table_name='reservations')
    op.drop_index('ix_reservations_status', table_name='reservations')
    op.drop_table('reservations')

    op.drop_index('ix_stock_transactions_created_at', table_name='stock_transactions')
    op.drop_index('ix_stock_transactions_reference_number', table_name='stock_transactions')
    op.drop_index('ix_stock_transactions_transaction_type', table_name='stock_transactions')
    op.drop_index('ix_stock_transactions_item_id', table_name='stock_transactions')
    op.drop_table('stock_transactions')

    op.drop_index('ix_inventory_stock_reorder_level', table_name='inventory')
    op.drop_index('ix_inventory_status', table_name='inventory')
    op.drop_index('ix_inventory_category', table_name='inventory')
    op.drop_index('ix_inventory_item_id', table_name='inventory')
    op.drop_index('ix_inventory_id', table_name='inventory')
    op.drop_table('inventory')
