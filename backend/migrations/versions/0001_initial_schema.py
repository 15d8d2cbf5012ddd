"""initial schema: users, roles, permissions, asset transfers, audit log

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

TRANSFER_STATUSES = (
    "'Draft','PendingManagerApproval','PendingAccountantUpdate','PendingRecipientApproval',"
    "'PendingRecipientManagerApproval','PendingFinanceControllerApproval','Approved','Rejected'"
)


def upgrade():
    op.create_table('permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'])

    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_roles_name', 'roles', ['name'])

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('full_name', sa.String(length=128), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False, unique=True),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('department', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('position', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_department', 'users', ['department'])

    op.create_table('role_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),
    )

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_user_role'),
    )

    op.create_table('asset_transfers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('requestor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('request_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('asset_description', sa.String(length=255), nullable=False),
        sa.Column('asset_tag_number', sa.String(length=64), nullable=False),
        sa.Column('current_location', sa.String(length=128), nullable=False),
        sa.Column('current_cost_center', sa.String(length=64), nullable=False),
        sa.Column('current_owner', sa.String(length=128), nullable=False),
        sa.Column('new_location', sa.String(length=128), nullable=False),
        sa.Column('new_cost_center', sa.String(length=64), nullable=False),
        sa.Column('new_owner', sa.String(length=128), nullable=False),
        sa.Column('purpose', sa.String(length=255), nullable=False),
        sa.Column('transfer_kind', sa.String(length=16), nullable=False, server_default='INTERNAL'),
        sa.Column('justification', sa.Text(), nullable=False),
        sa.Column('cost', sa.Numeric(18, 2), nullable=True),
        sa.Column('net_book_value', sa.Numeric(18, 2), nullable=True),
        sa.Column('accountant_sign_off_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accountant_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', sa.String(length=40), nullable=False, server_default='Draft'),
        sa.Column('manager_approval_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recipient_approval_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recipient_manager_approval_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finance_controller_approval_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('rejected_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint(f'status IN ({TRANSFER_STATUSES})', name='ck_asset_transfers_status'),
        sa.CheckConstraint("transfer_kind IN ('INTERCOMPANY','INTERNAL')", name='ck_asset_transfers_kind'),
    )
    op.create_index('ix_asset_transfers_requestor_id', 'asset_transfers', ['requestor_id'])
    op.create_index('ix_asset_transfers_recipient_id', 'asset_transfers', ['recipient_id'])
    op.create_index('ix_asset_transfers_asset_tag_number', 'asset_transfers', ['asset_tag_number'])
    op.create_index('ix_asset_transfers_status', 'asset_transfers', ['status'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('roles_snapshot', sa.JSON(), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('asset_transfers')
    op.drop_table('user_roles')
    op.drop_table('role_permissions')
    op.drop_table('users')
    op.drop_table('roles')
    op.drop_table('permissions')
