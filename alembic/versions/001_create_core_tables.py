"""Create tenant, agent, number, call history and webhook job tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # clients table
    op.create_table(
        "clients",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("minutes_included", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minutes_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("phone_status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint(
            "phone_status IN ('active', 'inactive')", name="ck_clients_phone_status"
        ),
    )
    op.create_index("ix_clients_email", "clients", ["email"])

    # agents table
    op.create_table(
        "agents",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("client_id", sa.String(36), nullable=False),
        sa.Column("retell_agent_id", sa.String(100), nullable=False),
        sa.Column("retell_llm_id", sa.String(100), nullable=True),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column("voice", sa.String(100), nullable=False),
        sa.Column("language", sa.String(20), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("transfer_calls", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("cal_com", sa.JSON(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("retell_agent_id"),
    )
    op.create_index("ix_agents_client_id", "agents", ["client_id"])
    op.create_index("ix_agents_retell_agent_id", "agents", ["retell_agent_id"])

    # phone_numbers table
    op.create_table(
        "phone_numbers",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("client_id", sa.String(36), nullable=False),
        sa.Column("agent_id", sa.String(36), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("twilio_sid", sa.String(64), nullable=False),
        sa.Column("monthly_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("stripe_subscription_item_id", sa.String(255), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("phone_number"),
    )
    op.create_index("ix_phone_numbers_client_id", "phone_numbers", ["client_id"])

    # call_history table
    op.create_table(
        "call_history",
        sa.Column("id", sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column("retell_call_id", sa.String(100), nullable=False),
        sa.Column("retell_agent_id", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("transcript", sa.Text(), nullable=False, server_default=""),
        sa.Column("call_duration_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("call_status", sa.String(50), nullable=False, server_default="completed"),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["retell_agent_id"], ["agents.retell_agent_id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint("retell_call_id"),
    )
    op.create_index("ix_call_history_retell_agent_id", "call_history", ["retell_agent_id"])
    op.create_index("ix_call_history_created_at", "call_history", ["created_at"])

    # webhook_jobs table
    op.create_table(
        "webhook_jobs",
        sa.Column("id", sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column("job_type", sa.String(50), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_webhook_jobs_status",
        ),
    )
    op.create_index("ix_webhook_jobs_status", "webhook_jobs", ["status"])
    op.create_index("ix_webhook_jobs_created_at", "webhook_jobs", ["created_at"])


def downgrade() -> None:
    op.drop_table("webhook_jobs")
    op.drop_table("call_history")
    op.drop_table("phone_numbers")
    op.drop_table("agents")
    op.drop_table("clients")
