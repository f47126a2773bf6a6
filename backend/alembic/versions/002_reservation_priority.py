"""Add priority, urgency and estimated completion to reservations

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column('reservations', sa.Column('priority_level', sa.Integer(), nullable=False, server_default='1'))
    op.add_column('reservations', sa.Column('is_urgent', sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column('reservations', sa.Column('estimated_completion', sa.DateTime(), nullable=True))

    # Backfill priority from status for existing rows
    op.execute("""
        UPDATE reservations SET priority_level = CASE status
            WHEN 'pending' THEN 1
            WHEN 'approved' THEN 2
            WHEN 'completed' THEN 5
            ELSE 6
        END
    """)

    op.create_index('ix_reservations_priority_level_created_at', 'reservations', ['priority_level', 'created_at'])
    op.create_index('ix_reservations_is_urgent_status', 'reservations', ['is_urgent', 'status'])


def downgrade() -> None:
    op.drop_index('ix_reservations_is_urgent_status', table_name='reservations')
    op.drop_index('ix_reservations_priority_level_created_at', table_name='reservations')
    op.drop_column('reservations', 'estimated_completion')
    op.drop_column('reservations', 'is_urgent')
    op.drop_column('reservations', 'priority_level')
