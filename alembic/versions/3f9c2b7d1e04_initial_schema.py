"""Initial schema: users, form links, submissions and activity log

Revision ID: 3f9c2b7d1e04
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2b7d1e04'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'AGENT', name='userrole'), nullable=False),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'form_links',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('unit_number', sa.String(length=100), nullable=False),
        sa.Column('sales_agent', sa.String(length=200), nullable=False),
        sa.Column('link_code', sa.String(length=64), nullable=False),
        sa.Column('client_email', sa.String(length=255), nullable=True),
        sa.Column('expiry_days', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'DELETED', name='linkstatus'), nullable=False),
        sa.Column('submissions_count', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_form_links_owner_user_id'), 'form_links', ['owner_user_id'], unique=False)
    op.create_index(op.f('ix_form_links_link_code'), 'form_links', ['link_code'], unique=True)
    op.create_index(op.f('ix_form_links_created_at'), 'form_links', ['created_at'], unique=False)
    op.create_index(op.f('ix_form_links_status'), 'form_links', ['status'], unique=False)

    op.create_table(
        'form_submissions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('link_id', sa.String(length=36), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=200), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('submission_data', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='submissionstatus'), nullable=False),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['link_id'], ['form_links.id']),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_form_submissions_link_id'), 'form_submissions', ['link_id'], unique=False)
    op.create_index(op.f('ix_form_submissions_owner_user_id'), 'form_submissions', ['owner_user_id'], unique=False)
    op.create_index(op.f('ix_form_submissions_submitted_at'), 'form_submissions', ['submitted_at'], unique=False)
    op.create_index(op.f('ix_form_submissions_status'), 'form_submissions', ['status'], unique=False)

    op.create_table(
        'activity_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column(
            'action',
            sa.Enum(
                'LOGIN', 'LOGOUT', 'CHANGE_PASSWORD', 'CREATE_FORM_LINK', 'UPDATE_FORM_LINK',
                'DELETE_FORM_LINK', 'FORM_SUBMISSION', 'REVIEW_SUBMISSION', 'EXPORT_SUBMISSIONS',
                'CREATE_USER', 'UPDATE_USER', 'DEACTIVATE_USER', 'BOOTSTRAP_ADMIN',
                name='activityaction'
            ),
            nullable=False
        ),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_activity_log_id'), 'activity_log', ['id'], unique=False)
    op.create_index(op.f('ix_activity_log_user_id'), 'activity_log', ['user_id'], unique=False)
    op.create_index(op.f('ix_activity_log_action'), 'activity_log', ['action'], unique=False)
    op.create_index(op.f('ix_activity_log_request_id'), 'activity_log', ['request_id'], unique=False)
    op.create_index(op.f('ix_activity_log_created_at'), 'activity_log', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('activity_log')
    op.drop_table('form_submissions')
    op.drop_table('form_links')
    op.drop_table('users')
    sa.Enum(name='activityaction').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='submissionstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='linkstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
