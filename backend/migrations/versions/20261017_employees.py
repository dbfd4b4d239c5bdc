"""employees registry

Revision ID: 20261017_employees
Revises: 20261016_initial_schema
Create Date: 2026-10-17 00:00:00.000000

Adds the staff registry used to validate cash session worked hours and to
cost them (hours x hourly rate).
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_employees'
down_revision = '20261016_initial_schema'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'employees',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='Hourly'),
        sa.Column('hourly_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('salary', sa.Float(), nullable=False, server_default='0'),
        sa.Column('other_costs', sa.Float(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id', name='pk_employees'),
    )


def downgrade():
    op.drop_table('employees')
