"""Initial migration - Create routes, stops, drivers and buses tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create routes table
    op.create_table(
        'routes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('route_name', sa.String(), nullable=False),
        sa.Column('directions', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('route_name'),
    )

    # Create stops table
    op.create_table(
        'stops',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('route_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('arrival_time', sa.String(), nullable=True),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('lat >= -90 AND lat <= 90', name='ck_stops_lat_range'),
        sa.CheckConstraint('lng >= -180 AND lng <= 180', name='ck_stops_lng_range'),
        sa.ForeignKeyConstraint(['route_id'], ['routes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stops_route_id', 'stops', ['route_id'])
    op.create_index('ix_stops_location', 'stops', ['lat', 'lng'])

    # Create drivers table
    op.create_table(
        'drivers',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('shift', sa.String(), nullable=False, server_default='Morning'),
        sa.Column('assigned_bus_id', sa.String(36), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone'),
    )
    op.create_index('ix_drivers_assigned_bus_id', 'drivers', ['assigned_bus_id'])

    # Create buses table
    op.create_table(
        'buses',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('bus_number', sa.String(), nullable=False),
        sa.Column('route_id', sa.String(36), nullable=True),
        sa.Column('driver_id', sa.String(36), nullable=True),
        sa.Column('driver_name', sa.String(), nullable=True),
        sa.Column('driver_phone', sa.String(), nullable=True),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='On Time'),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('emergency', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('issue_note', sa.Text(), nullable=True),
        sa.Column('last_stop_name', sa.String(), nullable=True),
        sa.Column('last_stop_time', sa.DateTime(), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('lat >= -90 AND lat <= 90', name='ck_buses_lat_range'),
        sa.CheckConstraint('lng >= -180 AND lng <= 180', name='ck_buses_lng_range'),
        sa.ForeignKeyConstraint(['route_id'], ['routes.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bus_number'),
    )
    op.create_index('ix_buses_route_id', 'buses', ['route_id'])
    op.create_index('ix_buses_location', 'buses', ['lat', 'lng'])


def downgrade() -> None:
    op.drop_index('ix_buses_location', table_name='buses')
    op.drop_index('ix_buses_route_id', table_name='buses')
    op.drop_table('buses')
    op.drop_index('ix_drivers_assigned_bus_id', table_name='drivers')
    op.drop_table('drivers')
    op.drop_index('ix_stops_location', table_name='stops')
    op.drop_index('ix_stops_route_id', table_name='stops')
    op.drop_table('stops')
    op.drop_table('routes')
