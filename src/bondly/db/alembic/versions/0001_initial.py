"""Create sessions, responses and advice tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("creator_id", sa.String(64), nullable=False),
        sa.Column("creator_name", sa.String(50), nullable=False),
        sa.Column("partner_name", sa.String(50), nullable=True),
        sa.Column("share_token", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sessions_creator_id", "sessions", ["creator_id"])
    op.create_index("ix_sessions_share_token", "sessions", ["share_token"], unique=True)
    op.create_index("ix_sessions_created_at", "sessions", ["created_at"])

    op.create_table(
        "responses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("is_creator", sa.Boolean(), nullable=False),
        sa.Column("situation_description", sa.Text(), nullable=False),
        sa.Column("feelings", sa.Text(), nullable=False),
        sa.Column("emotional_state", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_responses_session_id", "responses", ["session_id"])
    op.create_index("ix_responses_created_at", "responses", ["created_at"])

    op.create_table(
        "advice",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("is_creator", sa.Boolean(), nullable=False),
        sa.Column("advice_text", sa.Text(), nullable=False),
        sa.Column("conversation_starters", sa.JSON(), nullable=False),
        sa.Column("action_steps", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_advice_session_id", "advice", ["session_id"])
    op.create_index("ix_advice_created_at", "advice", ["created_at"])


def downgrade() -> None:
    op.drop_table("advice")
    op.drop_table("responses")
    op.drop_table("sessions")
