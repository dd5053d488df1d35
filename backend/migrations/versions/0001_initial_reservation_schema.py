"""initial reservation schema

Revision ID: 0001_initial_reservation_schema
Revises:
Create Date: 2024-01-08 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_reservation_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_LAB_STATION = sa.text("status = 'active' AND resource_kind = 'lab_station'")


def upgrade() -> None:
    op.create_table(
        'resources',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('building', sa.String(length=255), nullable=True),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('room_type', sa.String(length=32), nullable=True),
        sa.Column('equipment', sa.JSON(), nullable=True),
        sa.Column('parent_id', sa.String(), nullable=True),
        sa.Column('station_number', sa.String(length=32), nullable=True),
        sa.Column('status_override', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['resources.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_resources_id', 'resources', ['id'])
    op.create_index('ix_resources_kind', 'resources', ['kind'])
    op.create_index('ix_resources_parent_id', 'resources', ['parent_id'])

    op.create_table(
        'reservations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('resource_id', sa.String(), nullable=False),
        sa.Column('resource_kind', sa.String(length=32), nullable=False),
        sa.Column('holder_id', sa.String(length=64), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('purpose', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.String(length=2000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('start_time < end_time', name='ck_reservations_interval'),
    )
    op.create_index('ix_reservations_id', 'reservations', ['id'])
    op.create_index('ix_reservations_resource_id', 'reservations', ['resource_id'])
    op.create_index('ix_reservations_holder_id', 'reservations', ['holder_id'])
    op.create_index('ix_reservations_start_time', 'reservations', ['start_time'])
    op.create_index('ix_reservations_end_time', 'reservations', ['end_time'])
    op.create_index('ix_reservations_status', 'reservations', ['status'])
    op.create_index(
        'ix_reservations_resource_window',
        'reservations',
        ['resource_id', 'status', 'start_time', 'end_time'],
    )
    # At most one active lab-station reservation per holder
    op.create_index(
        'uq_reservations_active_lab_station_holder',
        'reservations',
        ['holder_id'],
        unique=True,
        sqlite_where=ACTIVE_LAB_STATION,
        postgresql_where=ACTIVE_LAB_STATION,
    )

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        # Overlapping active reservations on one resource are rejected by the database itself
        op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
        op.execute(
            """
            ALTER TABLE reservations
            ADD CONSTRAINT ex_reservations_active_no_overlap
            EXCLUDE USING gist (
                resource_id WITH =,
                tsrange(start_time, end_time, '[)') WITH &&
            )
            WHERE (status = 'active')
            """
        )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('holder_id', sa.String(length=64), nullable=False),
        sa.Column('reservation_id', sa.Uuid(), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.String(length=1000), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['reservation_id'], ['reservations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reservation_id', 'type', name='uq_notifications_reservation_type'),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_holder_id', 'notifications', ['holder_id'])
    op.create_index('ix_notifications_reservation_id', 'notifications', ['reservation_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])


def downgrade() -> None:
    op.drop_table('notifications')
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        op.execute('ALTER TABLE reservations DROP CONSTRAINT IF EXISTS ex_reservations_active_no_overlap')
    op.drop_index('uq_reservations_active_lab_station_holder', table_name='reservations')
    op.drop_index('ix_reservations_resource_window', table_name='reservations')
    op.drop_table('reservations')
    op.drop_table('resources')
