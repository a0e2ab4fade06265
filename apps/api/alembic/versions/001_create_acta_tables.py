"""Create acta workflow tables.

Revision ID: 001
Revises: 
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'actas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('objective', sa.Text(), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('commitments_summary', sa.Text(), nullable=True),
        sa.Column('state', sa.String(length=32), nullable=False, server_default='draft'),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('approved_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('submitted_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approval_cycle', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "state IN ('draft', 'pending_approval', 'approved', 'sent')", name='ck_actas_state'
        ),
    )
    op.create_index('ix_actas_id', 'actas', ['id'])
    op.create_index('ix_actas_state', 'actas', ['state'])
    op.create_index('ix_actas_created_by_id', 'actas', ['created_by_id'])

    op.create_table(
        'acta_participants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('kind', sa.String(length=16), nullable=False, server_default='external'),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('acta_id', 'email', name='uq_acta_participant_email'),
    )
    op.create_index('ix_acta_participants_id', 'acta_participants', ['id'])
    op.create_index('ix_acta_participants_acta_id', 'acta_participants', ['acta_id'])

    op.create_table(
        'participant_approvals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'participant_id',
            sa.Integer(),
            sa.ForeignKey('acta_participants.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('approval_cycle', sa.Integer(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('photo_path', sa.Text(), nullable=True),
        sa.Column('rejected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('participant_id', 'approval_cycle', name='uq_participant_approval_cycle'),
    )
    op.create_index('ix_participant_approvals_id', 'participant_approvals', ['id'])
    op.create_index('ix_participant_approvals_acta_id', 'participant_approvals', ['acta_id'])
    op.create_index('ix_participant_approvals_participant_id', 'participant_approvals', ['participant_id'])

    op.create_table(
        'commitments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column(
            'participant_id',
            sa.Integer(),
            sa.ForeignKey('acta_participants.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('client_member_id', sa.Integer(), nullable=True),
        sa.Column('state', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('status_detail', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('updated_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'participant_id IS NULL OR client_member_id IS NULL', name='ck_commitments_single_assignee'
        ),
    )
    op.create_index('ix_commitments_id', 'commitments', ['id'])
    op.create_index('ix_commitments_acta_id', 'commitments', ['acta_id'])

    op.create_table(
        'commitment_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'commitment_id', sa.Integer(), sa.ForeignKey('commitments.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('previous_state', sa.String(length=32), nullable=True),
        sa.Column('new_state', sa.String(length=32), nullable=False),
        sa.Column('detail', sa.Text(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commitment_history_id', 'commitment_history', ['id'])
    op.create_index('ix_commitment_history_commitment_id', 'commitment_history', ['commitment_id'])

    op.create_table(
        'acta_clients',
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('acta_id', 'client_id'),
    )
    op.create_table(
        'acta_activities',
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('activity_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('acta_id', 'activity_id'),
    )

    op.create_table(
        'acta_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('original_filename', sa.Text(), nullable=False),
        sa.Column('storage_path', sa.Text(), nullable=False),
        sa.Column('mime_type', sa.String(length=255), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_path'),
    )
    op.create_index('ix_acta_documents_id', 'acta_documents', ['id'])
    op.create_index('ix_acta_documents_acta_id', 'acta_documents', ['acta_id'])

    op.create_table(
        'commitment_history_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'history_entry_id',
            sa.Integer(),
            sa.ForeignKey('commitment_history.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('original_filename', sa.Text(), nullable=False),
        sa.Column('storage_path', sa.Text(), nullable=False),
        sa.Column('mime_type', sa.String(length=255), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_path'),
    )
    op.create_index('ix_commitment_history_documents_id', 'commitment_history_documents', ['id'])
    op.create_index(
        'ix_commitment_history_documents_history_entry_id', 'commitment_history_documents', ['history_entry_id']
    )

    op.create_table(
        'acta_audit_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('acta_id', sa.Integer(), sa.ForeignKey('actas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_kind', sa.String(length=50), nullable=False),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('correlation_id', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_acta_audit_entries_id', 'acta_audit_entries', ['id'])
    op.create_index('ix_acta_audit_entries_acta_id', 'acta_audit_entries', ['acta_id'])
    op.create_index('ix_acta_audit_entries_event_kind', 'acta_audit_entries', ['event_kind'])
    op.create_index('ix_acta_audit_entries_correlation_id', 'acta_audit_entries', ['correlation_id'])
    op.create_index('ix_acta_audit_entries_created_at', 'acta_audit_entries', ['created_at'])


def downgrade() -> None:
    op.drop_table('acta_audit_entries')
    op.drop_table('commitment_history_documents')
    op.drop_table('acta_documents')
    op.drop_table('acta_activities')
    op.drop_table('acta_clients')
    op.drop_table('commitment_history')
    op.drop_table('commitments')
    op.drop_table('participant_approvals')
    op.drop_table('acta_participants')
    op.drop_table('actas')
    op.drop_table('users')
