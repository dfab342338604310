"""initial telephony schema

Revision ID: a0c1e2f3b4d5
Revises:
Create Date: 2026-10-18 09:00:00.000000

Creates phone numbers, clients, conversations, messages, calls, the call
routing audit log and AI agent configs.

Conversations carry two partial unique indexes so that each
(tenant, counterparty) has at most one active job-less thread and at most
one active thread per job.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a0c1e2f3b4d5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create telephony tables."""
    op.create_table(
        'phone_numbers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('number', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('ai_dispatcher_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_routed_decision', sa.String(20), nullable=True),
        sa.Column('last_routed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'uq_phone_numbers_active_number',
        'phone_numbers',
        ['number'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_index('ix_phone_numbers_tenant_id', 'phone_numbers', ['tenant_id'])

    op.create_table(
        'clients',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_clients_tenant_phone', 'clients', ['tenant_id', 'phone'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('client_id', sa.UUID(), nullable=True),
        sa.Column('counterparty_phone', sa.String(20), nullable=False),
        sa.Column('job_id', sa.UUID(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
    )
    op.create_index(
        'uq_conversations_active_no_job',
        'conversations',
        ['tenant_id', 'counterparty_phone'],
        unique=True,
        postgresql_where=sa.text("status = 'active' AND job_id IS NULL"),
    )
    op.create_index(
        'uq_conversations_active_job',
        'conversations',
        ['tenant_id', 'counterparty_phone', 'job_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active' AND job_id IS NOT NULL"),
    )
    op.create_index('ix_conversations_tenant_client', 'conversations', ['tenant_id', 'client_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('conversation_id', sa.UUID(), nullable=False),
        sa.Column('direction', sa.String(20), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('sender', sa.String(50), nullable=False),
        sa.Column('recipient', sa.String(50), nullable=False),
        sa.Column('provider_message_id', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='delivered'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE'),
        sa.UniqueConstraint(
            'conversation_id', 'provider_message_id', name='uq_messages_conversation_provider_id'
        ),
    )
    op.create_index('ix_messages_provider_message_id', 'messages', ['provider_message_id'])

    op.create_table(
        'calls',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('phone_number_id', sa.UUID(), nullable=True),
        sa.Column('call_control_id', sa.String(255), nullable=False),
        sa.Column('handler', sa.String(20), nullable=False),
        sa.Column('direction', sa.String(20), nullable=False, server_default='inbound'),
        sa.Column('from_number', sa.String(50), nullable=False),
        sa.Column('to_number', sa.String(50), nullable=False),
        sa.Column('client_id', sa.UUID(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='initiated'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('call_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['phone_number_id'], ['phone_numbers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('call_control_id', name='uq_calls_call_control_id'),
    )
    op.create_index('ix_calls_tenant_id', 'calls', ['tenant_id'])

    op.create_table(
        'call_routing_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=False),
        sa.Column('caller_phone', sa.String(50), nullable=False),
        sa.Column('routing_decision', sa.String(20), nullable=False),
        sa.Column('ai_enabled', sa.Boolean(), nullable=False),
        sa.Column('call_control_id', sa.String(255), nullable=False),
        sa.Column('routing_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_call_routing_logs_phone_number', 'call_routing_logs', ['phone_number', 'occurred_at']
    )

    op.create_table(
        'ai_agent_configs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('agent_name', sa.String(100), nullable=False, server_default='AI Assistant'),
        sa.Column('company_name', sa.String(255), nullable=False, server_default='our company'),
        sa.Column('greeting_template', sa.Text(), nullable=False),
        sa.Column('voice', sa.String(50), nullable=False, server_default='female'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', name='uq_ai_agent_configs_tenant_id'),
    )


def downgrade() -> None:
    """Drop telephony tables."""
    op.drop_table('ai_agent_configs')
    op.drop_index('ix_call_routing_logs_phone_number', table_name='call_routing_logs')
    op.drop_table('call_routing_logs')
    op.drop_index('ix_calls_tenant_id', table_name='calls')
    op.drop_table('calls')
    op.drop_index('ix_messages_provider_message_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_conversations_tenant_client', table_name='conversations')
    op.drop_index('uq_conversations_active_job', table_name='conversations')
    op.drop_index('uq_conversations_active_no_job', table_name='conversations')
    op.drop_table('conversations')
    op.drop_index('ix_clients_tenant_phone', table_name='clients')
    op.drop_table('clients')
    op.drop_index('ix_phone_numbers_tenant_id', table_name='phone_numbers')
    op.drop_index('uq_phone_numbers_active_number', table_name='phone_numbers')
    op.drop_table('phone_numbers')
