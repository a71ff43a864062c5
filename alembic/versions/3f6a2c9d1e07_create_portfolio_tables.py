"""
Create portfolio, collaborator, invitation, post and subscription tables

Revision ID: 3f6a2c9d1e07
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f6a2c9d1e07'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column('pid', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('modified_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _base_indexes(table):
    op.create_index(op.f(f'ix_{table}_id'), table, ['id'], unique=True)
    op.create_index(op.f(f'ix_{table}_pid'), table, ['pid'], unique=True)


def upgrade():
    op.create_table(
        'portfolios',
        *_base_columns(),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        sa.UniqueConstraint('owner_id', name='uq_portfolios_owner_id'),
    )
    _base_indexes('portfolios')
    op.create_index(op.f('ix_portfolios_owner_id'), 'portfolios', ['owner_id'], unique=True)

    op.create_table(
        'profiles',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('portfolio_id', sa.UUID(), sa.ForeignKey('portfolios.pid'), nullable=True),
    )
    _base_indexes('profiles')
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=True)
    op.create_index(op.f('ix_profiles_portfolio_id'), 'profiles', ['portfolio_id'])

    op.create_table(
        'portfolio_collaborators',
        *_base_columns(),
        sa.Column('portfolio_id', sa.UUID(), sa.ForeignKey('portfolios.pid'), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('invited_by', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('invited_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('user_id', name='uq_portfolio_collaborators_user_id'),
    )
    _base_indexes('portfolio_collaborators')
    op.create_index(op.f('ix_portfolio_collaborators_user_id'), 'portfolio_collaborators', ['user_id'], unique=True)
    op.create_index('ix_portfolio_collaborators_portfolio_status', 'portfolio_collaborators', ['portfolio_id', 'status'])

    op.create_table(
        'portfolio_invitations',
        *_base_columns(),
        sa.Column('portfolio_id', sa.UUID(), sa.ForeignKey('portfolios.pid'), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('invited_by', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('token', name='uq_portfolio_invitations_token'),
    )
    _base_indexes('portfolio_invitations')
    op.create_index('ix_portfolio_invitations_portfolio_email_status', 'portfolio_invitations', ['portfolio_id', 'email', 'status'])
    op.create_index('ix_portfolio_invitations_expires_status', 'portfolio_invitations', ['expires_at', 'status'])

    op.create_table(
        'posts',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('portfolio_id', sa.UUID(), sa.ForeignKey('portfolios.pid'), nullable=True),
        sa.Column('publish_target', sa.String(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
    )
    _base_indexes('posts')
    op.create_index(op.f('ix_posts_user_id'), 'posts', ['user_id'])
    op.create_index(op.f('ix_posts_portfolio_id'), 'posts', ['portfolio_id'])

    op.create_table(
        'linkedin_posts',
        *_base_columns(),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id'), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=True),
    )
    _base_indexes('linkedin_posts')
    op.create_index(op.f('ix_linkedin_posts_post_id'), 'linkedin_posts', ['post_id'])

    op.create_table(
        'linkedin_organizations',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_linkedin_org_user_org'),
    )
    _base_indexes('linkedin_organizations')
    op.create_index(op.f('ix_linkedin_organizations_user_id'), 'linkedin_organizations', ['user_id'])

    op.create_table(
        'subscriptions',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('provider', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('price_id', sa.String(), nullable=True),
        sa.Column('membership_type', sa.String(), nullable=True),
        sa.Column('external_customer_id', sa.String(), nullable=True),
        sa.Column('external_subscription_id', sa.String(), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
    )
    _base_indexes('subscriptions')
    op.create_index(op.f('ix_subscriptions_user_id'), 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_user_status_type', 'subscriptions', ['user_id', 'status', 'membership_type'])


def downgrade():
    # Reverse dependency order; indexes go with their tables
    op.drop_table('subscriptions')
    op.drop_table('linkedin_organizations')
    op.drop_table('linkedin_posts')
    op.drop_table('posts')
    op.drop_table('portfolio_invitations')
    op.drop_table('portfolio_collaborators')
    op.drop_table('profiles')
    op.drop_table('portfolios')
