"""Create users, deals, swipes, matches and messages tables

Revision ID: a3f9c1d2e7b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a3f9c1d2e7b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the swipe, match and chat schema."""

    # Profiles and deals are written by other services; only the columns read here
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('gender', sa.String(length=32), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('preferred_gender', sa.String(length=32), nullable=True),
        sa.Column('min_age', sa.Integer(), nullable=True),
        sa.Column('max_age', sa.Integer(), nullable=True),
        sa.Column('max_distance_km', sa.Float(), nullable=True),
        sa.Column('preferences_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])

    op.create_table(
        'deals',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('merchant_name', sa.String(length=255), nullable=False),
        sa.Column('deal_nature', sa.String(length=255), nullable=True),
        sa.Column('terms_conditions', sa.Text(), nullable=True),
        sa.Column('time_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('time_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_deals_id', 'deals', ['id'])
    op.create_index('ix_deals_is_active', 'deals', ['is_active'])

    op.create_table(
        'swipes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('deal_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('direction', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'deal_id', name='unique_user_deal_swipe'),
        sa.CheckConstraint("direction IN ('left', 'right')", name='ck_swipes_direction')
    )
    op.create_index('ix_swipes_id', 'swipes', ['id'])
    op.create_index('ix_swipes_user_id', 'swipes', ['user_id'])
    op.create_index('ix_swipes_deal_id', 'swipes', ['deal_id'])
    op.create_index('ix_swipes_created_at', 'swipes', ['created_at'])
    op.create_index('idx_swipes_deal_direction_created', 'swipes', ['deal_id', 'direction', 'created_at'])

    op.create_table(
        'matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user1_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user2_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_low_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_high_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('deal_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('notified_user1', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('notified_user2', sa.Boolean(), nullable=False, server_default='false'),
        sa.ForeignKeyConstraint(['user1_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user2_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_low_id', 'user_high_id', 'deal_id', name='unique_match_pair_deal'),
        sa.CheckConstraint('user1_id <> user2_id', name='ck_matches_distinct_users')
    )
    op.create_index('ix_matches_id', 'matches', ['id'])
    op.create_index('ix_matches_user1_id', 'matches', ['user1_id'])
    op.create_index('ix_matches_user2_id', 'matches', ['user2_id'])
    op.create_index('ix_matches_deal_id', 'matches', ['deal_id'])
    op.create_index('ix_matches_created_at', 'matches', ['created_at'])

    op.create_table(
        'messages',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('match_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_id', 'messages', ['id'])
    op.create_index('idx_messages_match_created', 'messages', ['match_id', 'created_at', 'id'])


def downgrade() -> None:
    """Drop the swipe, match and chat schema."""
    op.drop_index('idx_messages_match_created', table_name='messages')
    op.drop_index('ix_messages_id', table_name='messages')
    op.drop_table('messages')

    op.drop_index('ix_matches_created_at', table_name='matches')
    op.drop_index('ix_matches_deal_id', table_name='matches')
    op.drop_index('ix_matches_user2_id', table_name='matches')
    op.drop_index('ix_matches_user1_id', table_name='matches')
    op.drop_index('ix_matches_id', table_name='matches')
    op.drop_table('matches')

    op.drop_index('idx_swipes_deal_direction_created', table_name='swipes')
    op.drop_index('ix_swipes_created_at', table_name='swipes')
    op.drop_index('ix_swipes_deal_id', table_name='swipes')
    op.drop_index('ix_swipes_user_id', table_name='swipes')
    op.drop_index('ix_swipes_id', table_name='swipes')
    op.drop_table('swipes')

    op.drop_index('ix_deals_is_active', table_name='deals')
    op.drop_index('ix_deals_id', table_name='deals')
    op.drop_table('deals')

    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
