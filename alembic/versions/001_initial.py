"""Initial migration

Revision ID: 001
Revises: 
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create restaurants table
    op.create_table(
        'restaurants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20)),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='America/New_York'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    
    # Create restaurant_settings table
    op.create_table(
        'restaurant_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), unique=True, nullable=False),
        sa.Column('hours_json', postgresql.JSON()),
        sa.Column('max_party_size', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('large_party_threshold', sa.Integer(), nullable=False, server_default='8'),
        sa.Column('last_seating_offset_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('max_future_booking_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('allow_same_day_booking', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('slot_duration_minutes', sa.Integer(), nullable=False, server_default='90'),
        sa.Column('default_slot_capacity', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('seating_areas', postgresql.JSON()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    
    # Create blocked_dates table
    op.create_table(
        'blocked_dates',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False, index=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('block_type', sa.String(50), nullable=False, server_default='closed'),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('public_message', sa.Text()),
        sa.Column('created_by', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('end_date >= start_date', name='valid_date_range'),
    )
    
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id')),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255)),
        sa.Column('role', sa.Enum('SUPER_ADMIN', 'RESTAURANT_ADMIN', 'STAFF', name='userrole'), server_default='STAFF'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('refresh_token', sa.String(500)),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    
    # Create time_slots table (the ledger)
    op.create_table(
        'time_slots',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='90'),
        sa.Column('seating_type', sa.String(20), nullable=False, server_default='indoor'),
        sa.Column('total_capacity', sa.Integer(), nullable=False),
        sa.Column('booked_capacity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('block_reason', sa.Text()),
        sa.Column('blocked_by', sa.String(255)),
        sa.Column('blocked_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('restaurant_id', 'start_at', 'seating_type', name='unique_slot'),
        sa.CheckConstraint('total_capacity > 0', name='valid_capacity'),
        sa.CheckConstraint('booked_capacity >= 0', name='valid_booked'),
    )
    op.create_index('idx_slots_restaurant_start', 'time_slots', ['restaurant_id', 'start_at'])
    
    # Create customers table
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('phone_fingerprint', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('email', sa.String(255)),
        sa.Column('sms_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sms_consent_at', sa.DateTime()),
        sa.Column('sms_consent_source', sa.String(50)),
        sa.Column('total_reservations', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_visits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('no_show_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_visit_date', sa.Date()),
        sa.Column('is_vip', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('restaurant_id', 'phone_fingerprint', name='unique_customer_phone'),
    )
    
    # Create calls table; links to reservations/callbacks are added below
    op.create_table(
        'calls',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('external_call_id', sa.String(100), unique=True, nullable=False),
        sa.Column('caller_phone', sa.String(20)),
        sa.Column('caller_phone_fingerprint', sa.String(64), index=True),
        sa.Column('started_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('ended_at', sa.DateTime()),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('outcome', sa.String(50)),
        sa.Column('transcript', sa.Text()),
        sa.Column('recording_url', sa.String(500)),
        sa.Column('reservation_id', postgresql.UUID(as_uuid=True)),
        sa.Column('callback_id', postgresql.UUID(as_uuid=True)),
        sa.Column('safety_trigger_activated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('safety_trigger_type', sa.String(50)),
        sa.Column('tool_calls_count', sa.Integer()),
        sa.Column('avg_tool_latency_ms', sa.Integer()),
        sa.Column('metadata_json', postgresql.JSON()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('idx_calls_restaurant_date', 'calls', ['restaurant_id', 'started_at'])
    
    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id'), index=True),
        sa.Column('slot_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('time_slots.id'), index=True),
        sa.Column('call_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('calls.id')),
        sa.Column('confirmation_code', sa.String(10), unique=True, nullable=False),
        sa.Column('reservation_datetime', sa.DateTime(), nullable=False),
        sa.Column('party_size', sa.Integer(), nullable=False),
        sa.Column('seating_type', sa.String(20)),
        sa.Column('special_requests', sa.Text()),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('customer_email', sa.String(255)),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('status_changed_at', sa.DateTime()),
        sa.Column('status_changed_by', sa.String(255)),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('cancellation_reason', sa.Text()),
        sa.Column('cancellation_source', sa.String(50)),
        sa.Column('source', sa.String(50), nullable=False, server_default='voice_ai'),
        sa.Column('seated_at', sa.DateTime()),
        sa.Column('internal_notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('party_size >= 1 AND party_size <= 100', name='valid_party_size'),
    )
    op.create_index('idx_reservations_datetime', 'reservations', ['restaurant_id', 'reservation_datetime'])
    op.create_index('idx_reservations_status', 'reservations', ['restaurant_id', 'status', 'reservation_datetime'])
    
    # Create callbacks table
    op.create_table(
        'callbacks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('call_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('calls.id')),
        sa.Column('resulting_reservation_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservations.id')),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('customer_name', sa.String(255)),
        sa.Column('requested_datetime', sa.DateTime()),
        sa.Column('party_size', sa.Integer()),
        sa.Column('seating_preference', sa.String(20)),
        sa.Column('special_requests', sa.Text()),
        sa.Column('failure_reason', sa.Text(), nullable=False),
        sa.Column('error_code', sa.String(50)),
        sa.Column('error_details', postgresql.JSON()),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('assigned_to', sa.String(255)),
        sa.Column('assigned_at', sa.DateTime()),
        sa.Column('resolved_at', sa.DateTime()),
        sa.Column('resolved_by', sa.String(255)),
        sa.Column('resolution_notes', sa.Text()),
        sa.Column('resolution_outcome', sa.String(50)),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_attempt_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('idx_callbacks_pending', 'callbacks', ['restaurant_id', 'status', 'priority', 'created_at'])
    
    op.create_foreign_key('fk_calls_reservation_id', 'calls', 'reservations', ['reservation_id'], ['id'])
    op.create_foreign_key('fk_calls_callback_id', 'calls', 'callbacks', ['callback_id'], ['id'])
    
    # Create daily aggregate tables
    op.create_table(
        'analytics_daily',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('transferred_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('abandoned_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('safety_triggers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bookings_made', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_covers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('callbacks_created', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('callbacks_resolved', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('restaurant_id', 'date', name='unique_daily_analytics'),
    )
    
    op.create_table(
        'analytics_daily_buckets',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('dimension', sa.String(20), nullable=False),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('restaurant_id', 'date', 'dimension', 'key', name='unique_daily_bucket'),
    )


def downgrade() -> None:
    op.drop_table('analytics_daily_buckets')
    op.drop_table('analytics_daily')
    op.drop_constraint('fk_calls_callback_id', 'calls', type_='foreignkey')
    op.drop_constraint('fk_calls_reservation_id', 'calls', type_='foreignkey')
    op.drop_table('callbacks')
    op.drop_table('reservations')
    op.drop_table('calls')
    op.drop_table('customers')
    op.drop_table('time_slots')
    op.drop_table('users')
    op.drop_table('blocked_dates')
    op.drop_table('restaurant_settings')
    op.drop_table('restaurants')
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
