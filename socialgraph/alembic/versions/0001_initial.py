"""initial social graph tables

Revision ID: 0001
Revises: 
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('username', sa.String(150), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table('follows',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('follower_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('following_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('follower_id', 'following_id', name='uix_follow_pair'),
        sa.CheckConstraint('follower_id <> following_id', name='ck_follow_not_self'),
    )
    op.create_index('ix_follows_follower_id', 'follows', ['follower_id'])
    op.create_index('ix_follows_following_id', 'follows', ['following_id'])
    op.create_index('ix_follows_created_at', 'follows', ['created_at'])
    op.create_index('ix_follows_following_page', 'follows', ['following_id', 'created_at', 'id'])
    op.create_index('ix_follows_follower_page', 'follows', ['follower_id', 'created_at', 'id'])

    op.create_table('friendships',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_low', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_high', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_low', 'user_high', name='uix_friend_pair'),
        sa.CheckConstraint('user_low < user_high', name='ck_friend_canonical_order'),
    )
    op.create_index('ix_friendships_user_low', 'friendships', ['user_low'])
    op.create_index('ix_friendships_user_high', 'friendships', ['user_high'])
    op.create_index('ix_friendships_created_at', 'friendships', ['created_at'])

def downgrade():
    op.drop_table('friendships')
    op.drop_table('follows')
    op.drop_table('users')
