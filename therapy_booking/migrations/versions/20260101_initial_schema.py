"""initial schema: users, profiles, bookings, payments, messages, reviews, notes, statistics"""

from alembic import op
import sqlalchemy as sa

revision = '20260101_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=True, unique=True),
        sa.Column('phone', sa.String(), nullable=True, unique=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('preferred_language', sa.String(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('verification_token', sa.String(), nullable=True),
        sa.Column('reset_password_token', sa.String(), nullable=True),
        sa.Column('reset_password_expires', sa.DateTime(), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_verification_token', 'users', ['verification_token'])
    op.create_index('ix_users_reset_password_token', 'users', ['reset_password_token'])

    op.create_table(
        'client_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('photo', sa.String(), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_client_profiles_id', 'client_profiles', ['id'])

    op.create_table(
        'doctor_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('photo', sa.String(), nullable=True),
        sa.Column('specialization', sa.JSON(), nullable=False),
        sa.Column('languages', sa.JSON(), nullable=False),
        sa.Column('hourly_rate', sa.Float(), nullable=False),
        sa.Column('available_hours', sa.JSON(), nullable=False),
        sa.Column('years_of_experience', sa.Integer(), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('rating', sa.Float(), nullable=False),
        sa.Column('total_reviews', sa.Integer(), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_doctor_profiles_id', 'doctor_profiles', ['id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('client_profiles.id'), nullable=False),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctor_profiles.id'), nullable=False),
        sa.Column('session_date', sa.DateTime(), nullable=False),
        sa.Column('session_duration', sa.Integer(), nullable=False),
        sa.Column('session_type', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('idx_booking_client_status', 'bookings', ['client_id', 'status'])
    op.create_index('idx_booking_doctor_status', 'bookings', ['doctor_id', 'status'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False, unique=True),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('client_profiles.id'), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('screenshot', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_payments_id', 'payments', ['id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sender_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('receiver_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_messages_id', 'messages', ['id'])
    op.create_index('idx_message_pair', 'messages', ['sender_id', 'receiver_id'])
    op.create_index('idx_message_receiver_read', 'messages', ['receiver_id', 'is_read'])

    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False, unique=True),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('client_profiles.id'), nullable=False),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctor_profiles.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_reviews_id', 'reviews', ['id'])

    op.create_table(
        'session_notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False, unique=True),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctor_profiles.id'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_session_notes_id', 'session_notes', ['id'])

    op.create_table(
        'doctor_statistics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctor_profiles.id'), nullable=False, unique=True),
        sa.Column('total_sessions', sa.Integer(), nullable=False),
        sa.Column('completed_sessions', sa.Integer(), nullable=False),
        sa.Column('upcoming_sessions', sa.Integer(), nullable=False),
        sa.Column('total_earnings', sa.Float(), nullable=False),
        sa.Column('monthly_earnings', sa.Float(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_doctor_statistics_id', 'doctor_statistics', ['id'])


def downgrade():
    for table in ('doctor_statistics', 'session_notes', 'reviews', 'messages', 'payments',
                  'bookings', 'doctor_profiles', 'client_profiles', 'users'):
        op.drop_table(table)
