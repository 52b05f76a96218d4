"""add location_records and minmax_records

Revision ID: 5e2c9a7d41b0
Revises:
Create Date: 2025-12-02 00:10:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e2c9a7d41b0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    if 'location_records' not in tables:
        op.create_table(
            'location_records',
            sa.Column('id', sa.String(64), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('latitude', sa.Float(), nullable=False),
            sa.Column('longitude', sa.Float(), nullable=False),
            sa.Column('altitude', sa.Float(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_location_records_timestamp', 'location_records', ['timestamp'])

    if 'minmax_records' not in tables:
        op.create_table(
            'minmax_records',
            sa.Column('id', sa.String(64), nullable=False),
            sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
            sa.Column('min_altitude', sa.Float(), nullable=True),
            sa.Column('max_altitude', sa.Float(), nullable=True),
            sa.Column('min_latitude', sa.Float(), nullable=True),
            sa.Column('max_latitude', sa.Float(), nullable=True),
            sa.Column('min_longitude', sa.Float(), nullable=True),
            sa.Column('max_longitude', sa.Float(), nullable=True),
            sa.Column('min_speed', sa.Float(), nullable=True),
            sa.Column('max_speed', sa.Float(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )


def downgrade() -> None:
    # Safe drop if exists
    op.execute('DROP TABLE IF EXISTS minmax_records')
    op.execute('DROP INDEX IF EXISTS ix_location_records_timestamp')
    op.execute('DROP TABLE IF EXISTS location_records')
