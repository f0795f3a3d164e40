"""initial schema: users, audit logs, bulk operations

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-10-02 09:14:27.318406

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=24), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('roles', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('current_role', sa.String(), nullable=False, server_default='mentee'),
        sa.Column('account_status', sa.String(), sa.CheckConstraint("account_status IN ('active', 'inactive', 'suspended', 'pending')"), nullable=False, server_default='pending'),
        sa.Column('suspension_reason', sa.Text(), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('registration_source', sa.String(), nullable=False, server_default='web'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index('ix_users_account_status', 'users', ['account_status'], unique=False)
    op.create_index('ix_users_created_at', 'users', ['created_at'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_user_id', sa.String(length=24), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), sa.CheckConstraint("status IN ('success', 'failure')"), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'], unique=False)
    op.create_index('ix_audit_logs_target_id_created_at', 'audit_logs', ['target_id', 'created_at'], unique=False)
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'], unique=False)

    op.create_table(
        'bulk_operations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('operation_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.Text(), sa.CheckConstraint("type IN ('import', 'export', 'bulk_update', 'bulk_delete', 'bulk_email')"), nullable=False),
        sa.Column('initiated_by', sa.String(length=24), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.Text(), sa.CheckConstraint("status IN ('pending', 'processing', 'completed', 'failed', 'cancelled')"), nullable=False, server_default='pending'),
        sa.Column('progress_total', sa.Integer(), server_default='0', nullable=False),
        sa.Column('progress_processed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('progress_successful', sa.Integer(), server_default='0', nullable=False),
        sa.Column('progress_failed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('cancel_requested', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('parameters', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('results', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('input_file', sa.Text(), nullable=True),
        sa.Column('output_file', sa.Text(), nullable=True),
        sa.Column('errors_file', sa.Text(), nullable=True),
        sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_bulk_operations_operation_id'), 'bulk_operations', ['operation_id'], unique=True)
    op.create_index('ix_bulk_operations_initiated_by_created_at', 'bulk_operations', ['initiated_by', 'created_at'], unique=False)
    op.create_index('ix_bulk_operations_status_created_at', 'bulk_operations', ['status', 'created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_bulk_operations_status_created_at', table_name='bulk_operations')
    op.drop_index('ix_bulk_operations_initiated_by_created_at', table_name='bulk_operations')
    op.drop_index(op.f('ix_bulk_operations_operation_id'), table_name='bulk_operations')
    op.drop_table('bulk_operations')

    op.drop_index('ix_audit_logs_action_type', table_name='audit_logs')
    op.drop_index('ix_audit_logs_target_id_created_at', table_name='audit_logs')
    op.drop_index('ix_audit_logs_actor_user_id_created_at', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_index('ix_users_account_status', table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
