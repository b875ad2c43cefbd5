"""create_vault_tables

Revision ID: 3c9e1d2a7b41
Revises:
Create Date: 2026-10-19 10:12:44.118305

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3c9e1d2a7b41'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # User directory
    op.create_table(
        'users',
        sa.Column('uid', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_seen', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('uid')
    )
    op.create_index('ix_users_email', 'users', ['email'])

    # File metadata
    op.create_table(
        'vault_files',
        sa.Column('doc_id', sa.String(length=36), nullable=False),
        sa.Column('file_id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('mime_type', sa.String(length=255), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('storage_key', sa.String(length=500), nullable=True),
        sa.Column('storage_path', sa.String(length=500), nullable=True),
        sa.Column('uploader', sa.String(length=255), nullable=False),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('is_analyzing', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('doc_id')
    )
    op.create_index('ix_vault_files_file_id', 'vault_files', ['file_id'], unique=True)
    op.create_index('ix_vault_files_owner_id', 'vault_files', ['owner_id'])
    op.create_index('idx_vault_files_owner_created', 'vault_files', ['owner_id', 'created_at'])

    # Device registry and print queue
    op.create_table(
        'devices',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('document', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'print_jobs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('target_device_id', sa.String(length=128), nullable=False),
        sa.Column('target_printer_name', sa.String(length=255), nullable=False),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_print_jobs_target_device_id', 'print_jobs', ['target_device_id'])
    op.create_index('ix_print_jobs_status', 'print_jobs', ['status'])

    # Chat
    op.create_table(
        'conversations',
        sa.Column('id', sa.String(length=300), nullable=False),
        sa.Column('participant_a', sa.String(length=128), nullable=False),
        sa.Column('participant_b', sa.String(length=128), nullable=False),
        sa.Column('participant_details', sa.JSON(), nullable=False),
        sa.Column('last_message', sa.Text(), nullable=True),
        sa.Column('last_message_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_conversations_participant_a', 'conversations', ['participant_a'])
    op.create_index('ix_conversations_participant_b', 'conversations', ['participant_b'])

    op.create_table(
        'user_messages',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('conversation_id', sa.String(length=300), nullable=False),
        sa.Column('sender_id', sa.String(length=128), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_user_messages_conversation_ts', 'user_messages', ['conversation_id', 'timestamp'])


def downgrade() -> None:
    op.drop_table('user_messages')
    op.drop_table('conversations')
    op.drop_table('print_jobs')
    op.drop_table('devices')
    op.drop_table('vault_files')
    op.drop_table('users')
