"""Initial schema: users, packages, bookings, payments and social tables.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.func.now())


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.func.now())


def _user_fk(name):
    return sa.Column(name, postgresql.UUID(as_uuid=True),
                     sa.ForeignKey('users.id', ondelete='CASCADE'),
                     nullable=False, index=True)


def upgrade() -> None:
    op.create_table(
        'subscription_packages',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration', sa.String(20), nullable=False, server_default='MONTHLY'),
        sa.Column('daily_swipe_limit', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )

    op.create_table(
        'users',
        _id(),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True, index=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('wallet_balance', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('active_package_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('subscription_packages.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('subscription_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('daily_swipe_remaining', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('free_swipes_remaining', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('last_swipe_reset', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'events',
        _id(),
        sa.Column('title', sa.String(255), nullable=False),
        _user_fk('host_id'),
        _created_at(),
    )

    op.create_table(
        'bookings',
        _id(),
        sa.Column('booking_number', sa.String(50), nullable=False, unique=True),
        sa.Column('event_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('events.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        _user_fk('user_id'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('ticket_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'ticket_data',
        _id(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('bookings.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('ticket_number', sa.String(50), nullable=False),
        sa.Column('qr_code', sa.String(64), nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        'payments',
        _id(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('bookings.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('cashfree_order_id', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('cashfree_payment_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('failure_reason', sa.String(500), nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'subscription_payments',
        _id(),
        _user_fk('user_id'),
        sa.Column('package_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('subscription_packages.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('cashfree_order_id', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('cashfree_payment_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('failure_reason', sa.String(500), nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'swipe_purchases',
        _id(),
        _user_fk('user_id'),
        sa.Column('swipe_count', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('cashfree_order_id', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('cashfree_payment_id', sa.String(255), nullable=True),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='PENDING'),
        _created_at(),
    )

    op.create_table(
        'gateway_orders',
        _id(),
        sa.Column('order_id', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('kind', sa.String(30), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
    )

    op.create_table(
        'user_preferences',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('connection_types', sa.JSON(), nullable=False),
        sa.Column('daily_swipe_limit', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('swipes_used_today', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_swipe_reset', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('discoverable', sa.Boolean(), nullable=False, server_default=sa.true()),
        _updated_at(),
    )

    op.create_table(
        'swipes',
        _id(),
        _user_fk('swiper_id'),
        _user_fk('swiped_id'),
        sa.Column('action', sa.String(10), nullable=False),
        _created_at(),
        sa.UniqueConstraint('swiper_id', 'swiped_id', name='uq_swipes_swiper_swiped'),
    )

    op.create_table(
        'matches',
        _id(),
        _user_fk('user1_id'),
        _user_fk('user2_id'),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('conversation_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('matched_via_event', sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )

    op.create_table(
        'social_conversations',
        _id(),
        sa.Column('match_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('matches.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        'blocks',
        _id(),
        _user_fk('blocker_id'),
        _user_fk('blocked_id'),
        sa.Column('reason', sa.String(500), nullable=True),
        _created_at(),
        sa.UniqueConstraint('blocker_id', 'blocked_id', name='uq_blocks_blocker_blocked'),
    )


def downgrade() -> None:
    for table in (
        'blocks',
        'social_conversations',
        'matches',
        'swipes',
        'user_preferences',
        'gateway_orders',
        'swipe_purchases',
        'subscription_payments',
        'payments',
        'ticket_data',
        'bookings',
        'events',
        'users',
        'subscription_packages',
    ):
        op.drop_table(table)
