"""initial_booking_schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:12:44.201876

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_ROLE = sa.Enum('CUSTOMER', 'PROVIDER', 'ADMIN', name='user_role')
PROVIDER_CATEGORY = sa.Enum(
    'EVENTS', 'VILLAS', 'DOCTORS', 'RESTAURANTS', 'HOTELS', 'BEAUTY', 'EDUCATION',
    'SPORTS', 'TRANSPORTATION', 'ENTERTAINMENT', 'SHOPPING', 'TOURISM', 'LEGAL',
    'FINANCE', 'TECHNOLOGY', 'CONSTRUCTION', 'AGRICULTURE', 'MANUFACTURING',
    name='provider_category',
)
WEEKDAY = sa.Enum(
    'MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY',
    name='weekday',
)
# Stored by value so the active-slot index predicate can name them
BOOKING_STATUS = sa.Enum('pending', 'confirmed', 'completed', 'cancelled', name='booking_status')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', USER_ROLE, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('phone IS NOT NULL OR email IS NOT NULL', name='user_contact_required'),
    )
    op.create_index('ix_users_phone', 'users', ['phone'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'providers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=False),
        sa.Column('category', PROVIDER_CATEGORY, nullable=False),
        sa.Column('subcategory', sa.String(length=100), nullable=True),
        sa.Column('description', sa.String(length=2000), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False,
                  comment='IANA zone in which working hours and booking times are expressed'),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('rating', sa.Float(), nullable=False),
        sa.Column('total_ratings', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating >= 0 AND rating <= 5', name='provider_rating_range'),
        sa.CheckConstraint('total_ratings >= 0', name='provider_total_ratings_non_negative'),
    )
    op.create_index('ix_providers_user_id', 'providers', ['user_id'], unique=True)
    op.create_index('ix_providers_category', 'providers', ['category'])

    op.create_table(
        'provider_services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('provider_id', sa.Uuid(), sa.ForeignKey('providers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.CheckConstraint('duration_minutes > 0', name='service_duration_positive'),
        sa.CheckConstraint('price >= 0', name='service_price_non_negative'),
    )
    op.create_index('ix_provider_services_provider_id', 'provider_services', ['provider_id'])

    op.create_table(
        'working_hours',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('provider_id', sa.Uuid(), sa.ForeignKey('providers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day', WEEKDAY, nullable=False),
        sa.Column('open_time', sa.String(length=5), nullable=False),
        sa.Column('close_time', sa.String(length=5), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False),
        sa.UniqueConstraint('provider_id', 'day', name='uq_working_hours_provider_day'),
    )
    op.create_index('ix_working_hours_provider_id', 'working_hours', ['provider_id'])

    op.create_table(
        'availability_exceptions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('provider_id', sa.Uuid(), sa.ForeignKey('providers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('custom_open', sa.String(length=5), nullable=True),
        sa.Column('custom_close', sa.String(length=5), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('provider_id', 'date', name='uq_availability_exception_provider_date'),
    )
    op.create_index('ix_availability_exceptions_provider_id', 'availability_exceptions', ['provider_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider_id', sa.Uuid(), sa.ForeignKey('providers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('provider_services.id', ondelete='SET NULL'), nullable=True),
        sa.Column('service_name', sa.String(length=255), nullable=False),
        sa.Column('service_duration_minutes', sa.Integer(), nullable=False),
        sa.Column('service_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', BOOKING_STATUS, nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=False), nullable=False),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('review', sa.String(length=500), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating IS NULL OR (rating >= 1 AND rating <= 5)', name='booking_rating_range'),
        sa.CheckConstraint('service_duration_minutes > 0', name='booking_duration_positive'),
    )
    op.create_index('ix_bookings_customer_id', 'bookings', ['customer_id'])
    op.create_index('ix_bookings_provider_id', 'bookings', ['provider_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_scheduled_at', 'bookings', ['scheduled_at'])
    op.create_index('ix_bookings_provider_scheduled', 'bookings', ['provider_id', 'scheduled_at'])

    # At most one active booking per provider and start time
    op.create_index(
        'uq_bookings_active_slot',
        'bookings',
        ['provider_id', 'scheduled_at'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'confirmed')"),
        sqlite_where=sa.text("status IN ('pending', 'confirmed')"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('uq_bookings_active_slot', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('availability_exceptions')
    op.drop_table('working_hours')
    op.drop_table('provider_services')
    op.drop_table('providers')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (BOOKING_STATUS, WEEKDAY, PROVIDER_CATEGORY, USER_ROLE):
        enum_type.drop(bind, checkfirst=True)
