"""initial schema

Revision ID: 4f1c2a9e7b30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f1c2a9e7b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


messagedirection_enum = postgresql.ENUM('INBOUND', 'OUTBOUND', name='messagedirection')
messagestatus_enum = postgresql.ENUM('SENT', 'DELIVERED', 'READ', 'FAILED', name='messagestatus')


def upgrade() -> None:
    op.create_table('whatsapp_numbers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('number', sa.String(length=20), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number_id', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_whatsapp_numbers_number', 'whatsapp_numbers', ['number'], unique=True)
    op.create_index('ix_whatsapp_numbers_phone_number_id', 'whatsapp_numbers', ['phone_number_id'], unique=True)
    op.create_index('ix_whatsapp_numbers_account', 'whatsapp_numbers', ['account_id'], unique=False)

    op.create_table('conversations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('whatsapp_number_id', sa.Uuid(), nullable=True),
        sa.Column('contact_number', sa.String(length=20), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('session_start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('session_end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['whatsapp_number_id'], ['whatsapp_numbers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_conversations_account_contact', 'conversations', ['account_id', 'contact_number'], unique=False)
    op.create_index('ix_conversations_account_last_message', 'conversations', ['account_id', 'last_message_at'], unique=False)
    op.create_index('ix_conversations_status', 'conversations', ['status'], unique=False)

    op.create_table('messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('conversation_id', sa.Uuid(), nullable=False),
        sa.Column('provider_message_id', sa.String(length=128), nullable=False),
        sa.Column('direction', messagedirection_enum, nullable=False),
        sa.Column('status', messagestatus_enum, nullable=False),
        sa.Column('content_type', sa.String(length=20), nullable=False),
        sa.Column('content', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_automated', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('extra_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_provider_message_id', 'messages', ['provider_message_id'], unique=True)
    op.create_index('ix_messages_conversation_timestamp', 'messages', ['conversation_id', 'timestamp'], unique=False)
    op.create_index('ix_messages_created_at', 'messages', ['created_at'], unique=False)

    op.create_table('workflows',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('triggers', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('nodes', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('schema_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_workflows_account_active', 'workflows', ['account_id', 'is_active'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_workflows_account_active', table_name='workflows')
    op.drop_table('workflows')
    op.drop_index('ix_messages_created_at', table_name='messages')
    op.drop_index('ix_messages_conversation_timestamp', table_name='messages')
    op.drop_index('ix_messages_provider_message_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_conversations_status', table_name='conversations')
    op.drop_index('ix_conversations_account_last_message', table_name='conversations')
    op.drop_index('ix_conversations_account_contact', table_name='conversations')
    op.drop_table('conversations')
    op.drop_index('ix_whatsapp_numbers_account', table_name='whatsapp_numbers')
    op.drop_index('ix_whatsapp_numbers_number', table_name='whatsapp_numbers')
    op.drop_index('ix_whatsapp_numbers_phone_number_id', table_name='whatsapp_numbers')
    op.drop_table('whatsapp_numbers')

    op.execute("DROP TYPE IF EXISTS messagestatus;")
    op.execute("DROP TYPE IF EXISTS messagedirection;")
