"""create trip planner tables

Revision ID: a7c3e1f0b001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a7c3e1f0b001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
	return [
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
		sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
	]


def upgrade() -> None:
	"""Upgrade schema."""
	op.create_table(
		'users',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('email', sa.String(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('is_active', sa.Boolean(), nullable=True),
		sa.Column('ai_credits', sa.Integer(), nullable=False, server_default=sa.text('0')),
		sa.Column('notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
		sa.Column('notification_push_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
		sa.Column('notification_push_plan_ready', sa.Boolean(), nullable=False, server_default=sa.true()),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
	op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

	op.create_table(
		'trips',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('user_id', sa.Integer(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('destination', sa.String(), nullable=True),
		sa.Column('destination_lat', sa.Float(), nullable=True),
		sa.Column('destination_lng', sa.Float(), nullable=True),
		sa.Column('start_date', sa.Date(), nullable=True),
		sa.Column('end_date', sa.Date(), nullable=True),
		sa.Column('currency', sa.String(length=8), nullable=False),
		sa.Column('notes', sa.Text(), nullable=True),
		sa.Column('cover_image_url', sa.String(), nullable=True),
		sa.Column('cover_image_attribution', sa.String(), nullable=True),
		sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_trips_id'), 'trips', ['id'], unique=False)
	op.create_index(op.f('ix_trips_user_id'), 'trips', ['user_id'], unique=False)

	op.create_table(
		'trip_days',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('trip_id', sa.Integer(), nullable=False),
		sa.Column('date', sa.Date(), nullable=False),
		sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('trip_id', 'date', name='uq_trip_days_trip_date')
	)
	op.create_index(op.f('ix_trip_days_id'), 'trip_days', ['id'], unique=False)
	op.create_index(op.f('ix_trip_days_trip_id'), 'trip_days', ['trip_id'], unique=False)

	op.create_table(
		'trip_stops',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('trip_id', sa.Integer(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('lat', sa.Float(), nullable=True),
		sa.Column('lng', sa.Float(), nullable=True),
		sa.Column('address', sa.String(), nullable=True),
		sa.Column('place_id', sa.String(), nullable=True),
		sa.Column('type', sa.String(length=16), nullable=False),
		sa.Column('nights', sa.Integer(), nullable=True),
		sa.Column('arrival_date', sa.Date(), nullable=True),
		sa.Column('departure_date', sa.Date(), nullable=True),
		sa.Column('sort_order', sa.Integer(), nullable=False),
		sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_trip_stops_id'), 'trip_stops', ['id'], unique=False)
	op.create_index(op.f('ix_trip_stops_trip_id'), 'trip_stops', ['trip_id'], unique=False)

	op.create_table(
		'budget_categories',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('trip_id', sa.Integer(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('color', sa.String(length=16), nullable=False),
		sa.Column('budget_limit', sa.Float(), nullable=True),
		sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_budget_categories_id'), 'budget_categories', ['id'], unique=False)
	op.create_index(op.f('ix_budget_categories_trip_id'), 'budget_categories', ['trip_id'], unique=False)

	op.create_table(
		'activities',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('trip_id', sa.Integer(), nullable=False),
		sa.Column('day_id', sa.Integer(), nullable=False),
		sa.Column('title', sa.String(), nullable=False),
		sa.Column('description', sa.Text(), nullable=True),
		sa.Column('category', sa.String(length=16), nullable=False),
		sa.Column('start_time', sa.String(length=5), nullable=True),
		sa.Column('end_time', sa.String(length=5), nullable=True),
		sa.Column('location_name', sa.String(), nullable=True),
		sa.Column('location_lat', sa.Float(), nullable=True),
		sa.Column('location_lng', sa.Float(), nullable=True),
		sa.Column('location_address', sa.String(), nullable=True),
		sa.Column('cost', sa.Float(), nullable=True),
		sa.Column('sort_order', sa.Integer(), nullable=False),
		sa.Column('check_in_date', sa.Date(), nullable=True),
		sa.Column('check_out_date', sa.Date(), nullable=True),
		sa.Column('category_data', sa.JSON(), nullable=True),
		sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
		sa.ForeignKeyConstraint(['day_id'], ['trip_days.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_activities_id'), 'activities', ['id'], unique=False)
	op.create_index(op.f('ix_activities_trip_id'), 'activities', ['trip_id'], unique=False)
	op.create_index(op.f('ix_activities_day_id'), 'activities', ['day_id'], unique=False)
	op.create_index(op.f('ix_activities_category'), 'activities', ['category'], unique=False)

	op.create_table(
		'plan_jobs',
		sa.Column('id', sa.String(length=36), nullable=False),
		*_timestamps(),
		sa.Column('user_id', sa.Integer(), nullable=False),
		sa.Column('trip_id', sa.Integer(), nullable=True),
		sa.Column('status', sa.String(length=16), nullable=False),
		sa.Column('context', sa.JSON(), nullable=False),
		sa.Column('messages', sa.JSON(), nullable=False),
		sa.Column('structure_json', sa.JSON(), nullable=True),
		sa.Column('progress', sa.JSON(), nullable=True),
		sa.Column('credits_charged', sa.Integer(), nullable=False, server_default=sa.text('0')),
		sa.Column('error', sa.Text(), nullable=True),
		sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('heartbeat_at', sa.DateTime(timezone=True), nullable=True),
		sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
		sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='SET NULL'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_plan_jobs_user_id'), 'plan_jobs', ['user_id'], unique=False)
	op.create_index(op.f('ix_plan_jobs_trip_id'), 'plan_jobs', ['trip_id'], unique=False)
	op.create_index(op.f('ix_plan_jobs_status'), 'plan_jobs', ['status'], unique=False)
	op.create_index(op.f('ix_plan_jobs_heartbeat_at'), 'plan_jobs', ['heartbeat_at'], unique=False)
	# Composite index for the active-job lookup
	op.create_index('ix_plan_jobs_user_status_created_at', 'plan_jobs', ['user_id', 'status', 'created_at'], unique=False)

	op.create_table(
		'push_subscriptions',
		sa.Column('id', sa.Integer(), nullable=False),
		*_timestamps(),
		sa.Column('user_id', sa.Integer(), nullable=False),
		sa.Column('endpoint', sa.String(length=1024), nullable=False),
		sa.Column('p256dh', sa.String(length=256), nullable=False),
		sa.Column('auth', sa.String(length=128), nullable=False),
		sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('endpoint')
	)
	op.create_index(op.f('ix_push_subscriptions_id'), 'push_subscriptions', ['id'], unique=False)
	op.create_index(op.f('ix_push_subscriptions_user_id'), 'push_subscriptions', ['user_id'], unique=False)

	op.create_table(
		'notification_logs',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
		sa.Column('user_id', sa.Integer(), nullable=False),
		sa.Column('category', sa.String(length=32), nullable=False),
		sa.Column('job_id', sa.String(length=36), nullable=True),
		sa.Column('title', sa.String(length=256), nullable=True),
		sa.Column('body', sa.String(length=512), nullable=True),
		sa.Column('delivered_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
		sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_notification_logs_id'), 'notification_logs', ['id'], unique=False)
	op.create_index(op.f('ix_notification_logs_created_at'), 'notification_logs', ['created_at'], unique=False)
	op.create_index(op.f('ix_notification_logs_user_id'), 'notification_logs', ['user_id'], unique=False)
	op.create_index(op.f('ix_notification_logs_category'), 'notification_logs', ['category'], unique=False)

	op.create_table(
		'request_logs',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
		sa.Column('correlation_id', sa.String(length=64), nullable=False),
		sa.Column('direction', sa.String(length=16), nullable=False),
		sa.Column('connection_type', sa.String(length=16), nullable=True),
		sa.Column('method', sa.String(length=16), nullable=True),
		sa.Column('path_template', sa.String(length=512), nullable=True),
		sa.Column('raw_path', sa.String(length=512), nullable=True),
		sa.Column('route_name', sa.String(length=128), nullable=True),
		sa.Column('status_code', sa.Integer(), nullable=True),
		sa.Column('duration_ms', sa.Integer(), nullable=False),
		sa.Column('client_ip', sa.String(length=64), nullable=True),
		sa.Column('user_agent', sa.String(length=256), nullable=True),
		sa.Column('auth_type', sa.String(length=16), nullable=True),
		sa.Column('user_id', sa.Integer(), nullable=True),
		sa.Column('provider', sa.String(length=64), nullable=True),
		sa.Column('operation', sa.String(length=64), nullable=True),
		sa.Column('target', sa.String(length=256), nullable=True),
		sa.Column('error_code', sa.String(length=64), nullable=True),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_request_logs_id'), 'request_logs', ['id'], unique=False)
	op.create_index(op.f('ix_request_logs_created_at'), 'request_logs', ['created_at'], unique=False)
	op.create_index(op.f('ix_request_logs_correlation_id'), 'request_logs', ['correlation_id'], unique=False)
	op.create_index(op.f('ix_request_logs_path_template'), 'request_logs', ['path_template'], unique=False)
	op.create_index(op.f('ix_request_logs_status_code'), 'request_logs', ['status_code'], unique=False)
	op.create_index(op.f('ix_request_logs_user_id'), 'request_logs', ['user_id'], unique=False)
	op.create_index(op.f('ix_request_logs_provider'), 'request_logs', ['provider'], unique=False)

	op.create_table(
		'ai_usage_logs',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
		sa.Column('user_id', sa.Integer(), nullable=False),
		sa.Column('trip_id', sa.Integer(), nullable=True),
		sa.Column('job_id', sa.String(length=36), nullable=True),
		sa.Column('task_type', sa.String(length=32), nullable=False),
		sa.Column('credits_charged', sa.Integer(), nullable=False, server_default=sa.text('0')),
		sa.Column('model', sa.String(length=64), nullable=True),
		sa.Column('input_tokens', sa.Integer(), nullable=True),
		sa.Column('output_tokens', sa.Integer(), nullable=True),
		sa.Column('duration_ms', sa.Integer(), nullable=False, server_default=sa.text('0')),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_ai_usage_logs_id'), 'ai_usage_logs', ['id'], unique=False)
	op.create_index(op.f('ix_ai_usage_logs_created_at'), 'ai_usage_logs', ['created_at'], unique=False)
	op.create_index(op.f('ix_ai_usage_logs_user_id'), 'ai_usage_logs', ['user_id'], unique=False)
	op.create_index(op.f('ix_ai_usage_logs_trip_id'), 'ai_usage_logs', ['trip_id'], unique=False)
	op.create_index(op.f('ix_ai_usage_logs_job_id'), 'ai_usage_logs', ['job_id'], unique=False)

	op.create_table(
		'rate_limit_windows',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('key', sa.String(length=128), nullable=False),
		sa.Column('window_index', sa.BigInteger(), nullable=False),
		sa.Column('count', sa.Integer(), nullable=False, server_default=sa.text('0')),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('key', 'window_index', name='uq_rate_limit_windows_key_window')
	)
	op.create_index(op.f('ix_rate_limit_windows_id'), 'rate_limit_windows', ['id'], unique=False)
	op.create_index(op.f('ix_rate_limit_windows_key'), 'rate_limit_windows', ['key'], unique=False)


def downgrade() -> None:
	"""Downgrade schema."""
	op.drop_table('rate_limit_windows')
	op.drop_table('ai_usage_logs')
	op.drop_table('request_logs')
	op.drop_table('notification_logs')
	op.drop_table('push_subscriptions')
	op.drop_index('ix_plan_jobs_user_status_created_at', table_name='plan_jobs')
	op.drop_table('plan_jobs')
	op.drop_table('activities')
	op.drop_table('budget_categories')
	op.drop_table('trip_stops')
	op.drop_table('trip_days')
	op.drop_table('trips')
	op.drop_table('users')
