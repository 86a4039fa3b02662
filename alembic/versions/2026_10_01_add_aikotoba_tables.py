"""add sent_messages, match_pairs, preset_aggregates, and push_subscriptions tables

Revision ID: 7a1e3c9d2b40
Revises:
Create Date: 2026-10-01

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "7a1e3c9d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the message ledger, match pairs, preset aggregates, and push subscriptions."""
    # sent_messages (the ledger)
    op.create_table(
        "sent_messages",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("sender_id", sa.String(length=64), nullable=False),
        sa.Column("receiver_id", sa.String(length=64), nullable=False),
        sa.Column("text", sa.String(length=500), nullable=False),
        sa.Column(
            "is_hidden",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_sent_messages_text", "sent_messages", ["text"], unique=False)
    op.create_index(
        "ix_sent_messages_receiver_text",
        "sent_messages",
        ["receiver_id", "text"],
        unique=False,
    )
    op.create_index(
        "ix_sent_messages_sender_text",
        "sent_messages",
        ["sender_id", "text"],
        unique=False,
    )

    # match_pairs (insert-only)
    op.create_table(
        "match_pairs",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user1_id", sa.String(length=64), nullable=False),
        sa.Column("user2_id", sa.String(length=64), nullable=False),
        sa.Column("text", sa.String(length=500), nullable=False),
        sa.Column(
            "matched_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_match_pairs_text_users",
        "match_pairs",
        ["text", "user1_id", "user2_id"],
        unique=False,
    )
    op.create_index(
        "ix_match_pairs_user1_matched_at",
        "match_pairs",
        ["user1_id", "matched_at"],
        unique=False,
    )
    op.create_index(
        "ix_match_pairs_user2_matched_at",
        "match_pairs",
        ["user2_id", "matched_at"],
        unique=False,
    )

    # preset_aggregates (derived from sent_messages)
    op.create_table(
        "preset_aggregates",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("text", sa.String(length=500), nullable=False, unique=True),
        sa.Column(
            "total_send_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "distinct_sender_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("last_sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("link_title", sa.String(length=512), nullable=True),
        sa.Column("link_image", sa.String(length=1024), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_preset_aggregates_last_sent_at",
        "preset_aggregates",
        ["last_sent_at"],
        unique=False,
    )

    # push_subscriptions
    op.create_table(
        "push_subscriptions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("endpoint", sa.Text(), nullable=False, unique=True),
        sa.Column("subscription", postgresql.JSONB(), nullable=False),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_push_subscriptions_user_id",
        "push_subscriptions",
        ["user_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop push_subscriptions, preset_aggregates, match_pairs, and sent_messages."""
    op.drop_index("ix_push_subscriptions_user_id", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")

    op.drop_index(
        "ix_preset_aggregates_last_sent_at", table_name="preset_aggregates"
    )
    op.drop_table("preset_aggregates")

    op.drop_index("ix_match_pairs_user2_matched_at", table_name="match_pairs")
    op.drop_index("ix_match_pairs_user1_matched_at", table_name="match_pairs")
    op.drop_index("ix_match_pairs_text_users", table_name="match_pairs")
    op.drop_table("match_pairs")

    op.drop_index("ix_sent_messages_sender_text", table_name="sent_messages")
    op.drop_index("ix_sent_messages_receiver_text", table_name="sent_messages")
    op.drop_index("ix_sent_messages_text", table_name="sent_messages")
    op.drop_table("sent_messages")
