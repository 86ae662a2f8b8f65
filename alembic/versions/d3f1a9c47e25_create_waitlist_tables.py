"""Create waitlist tables

Revision ID: d3f1a9c47e25
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd3f1a9c47e25'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Members --
    op.create_table(
        'profiles',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('handicap', sa.Float(), nullable=True),
        sa.Column('favorite_club', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('beta_access', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('invite_quota', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('invites_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'bag_equipment',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Text(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('brand', sa.Text(), nullable=True),
        sa.Column('model', sa.Text(), nullable=True),
        sa.Column('photo_count', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_bag_equipment_user_id', 'bag_equipment', ['user_id'])

    op.create_table(
        'invite_codes',
        sa.Column('code', sa.Text(), primary_key=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('uses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_uses', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_by', sa.Text(), nullable=True),
    )

    # -- Singleton flags row (id=1) --
    op.create_table(
        'feature_flags',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('beta_cap', sa.Integer(), nullable=True),
        sa.Column('public_beta_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('scoring_config', sa.JSON(), nullable=True),
        sa.Column('auto_approve_threshold', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # -- Applications --
    op.create_table(
        'waitlist_applications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('display_name', sa.Text(), server_default=''),
        sa.Column('city_region', sa.Text(), server_default=''),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('score', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('score_breakdown', sa.JSON(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('referral_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('referred_by', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_waitlist_status_score', 'waitlist_applications', ['status', 'score'])


def downgrade() -> None:
    op.drop_index('ix_waitlist_status_score', 'waitlist_applications')
    op.drop_table('waitlist_applications')
    op.drop_table('feature_flags')
    op.drop_table('invite_codes')
    op.drop_index('ix_bag_equipment_user_id', 'bag_equipment')
    op.drop_table('bag_equipment')
    op.drop_table('profiles')
