"""initial_workflow_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM('SUPER_ADMIN', 'ADMIN', 'REVIEWER', 'STAFF', name='userrole', create_type=False)
request_status = postgresql.ENUM('DRAFT', 'PENDING', 'REVIEWED', 'APPROVED', 'REJECTED', name='request_status', create_type=False)
review_status = postgresql.ENUM('PENDING', 'APPROVED', 'REJECTED', name='review_status', create_type=False)
leave_type = postgresql.ENUM(
    'ANNUAL', 'COMPASSIONATE', 'SICK', 'MATERNITY', 'PATERNITY', 'EMERGENCY', 'STUDY', 'WITHOUT_PAY',
    name='leave_type',
    create_type=False,
)
setting_data_type = postgresql.ENUM('STRING', 'INTEGER', 'BOOLEAN', 'JSON', name='setting_data_type', create_type=False)


def _audit_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum in (user_role, request_status, review_status, leave_type, setting_data_type):
        enum.create(bind, checkfirst=True)

    op.create_table(
        'users',
        *_audit_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('is_employment_info_locked', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'request_documents',
        *_audit_columns(),
        sa.Column('request_type', sa.String(length=50), nullable=False),
        sa.Column('reference', sa.String(length=50), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('status', request_status, nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        # purchase requests
        sa.Column('finance_reviewer_id', sa.Integer(), nullable=True),
        sa.Column('procurement_reviewer_id', sa.Integer(), nullable=True),
        sa.Column('finance_review_status', review_status, nullable=True),
        sa.Column('procurement_review_status', review_status, nullable=True),
        # leave
        sa.Column('leave_type', leave_type, nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('total_days_applied', sa.Integer(), nullable=True),
        sa.Column('leave_balance_at_application', sa.Integer(), nullable=True),
        sa.Column('amount_accrued_leave', sa.Integer(), nullable=True),
        sa.Column('ledger_year', sa.Integer(), nullable=True),
        sa.Column('reason_for_leave', sa.Text(), nullable=True),
        sa.Column('contact_during_leave', sa.String(length=255), nullable=True),
        sa.Column('leave_cover_name', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.ForeignKeyConstraint(['finance_reviewer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['procurement_reviewer_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_request_documents_id'), 'request_documents', ['id'], unique=False)
    op.create_index(op.f('ix_request_documents_request_type'), 'request_documents', ['request_type'], unique=False)
    op.create_index(op.f('ix_request_documents_reference'), 'request_documents', ['reference'], unique=True)
    op.create_index(op.f('ix_request_documents_creator_id'), 'request_documents', ['creator_id'], unique=False)

    op.create_table(
        'request_comments',
        *_audit_columns(),
        sa.Column('document_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_edited', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['request_documents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_request_comments_id'), 'request_comments', ['id'], unique=False)
    op.create_index(op.f('ix_request_comments_document_id'), 'request_comments', ['document_id'], unique=False)

    op.create_table(
        'request_copies',
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['request_documents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('request_id', 'user_id'),
    )

    op.create_table(
        'leave_balances',
        *_audit_columns(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('leave_type', leave_type, nullable=False),
        sa.Column('max_days', sa.Integer(), nullable=False),
        sa.Column('total_applied', sa.Integer(), nullable=False),
        sa.Column('accrued', sa.Integer(), nullable=False),
        sa.Column('balance', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'leave_type', name='uq_leave_balance_user_type'),
    )
    op.create_index(op.f('ix_leave_balances_id'), 'leave_balances', ['id'], unique=False)
    op.create_index(op.f('ix_leave_balances_user_id'), 'leave_balances', ['user_id'], unique=False)

    op.create_table(
        'system_settings',
        *_audit_columns(),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('setting_key', sa.String(length=100), nullable=False),
        sa.Column('setting_value', sa.Text(), nullable=True),
        sa.Column('data_type', setting_data_type, nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('setting_key'),
    )
    op.create_index(op.f('ix_system_settings_id'), 'system_settings', ['id'], unique=False)


def downgrade() -> None:
    op.drop_table('system_settings')
    op.drop_table('leave_balances')
    op.drop_table('request_copies')
    op.drop_table('request_comments')
    op.drop_table('request_documents')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in (setting_data_type, leave_type, review_status, request_status, user_role):
        enum.drop(bind, checkfirst=True)
