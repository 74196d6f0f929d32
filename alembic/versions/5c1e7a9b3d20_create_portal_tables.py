"""Create accounts, content, poll and audit tables

Revision ID: 5c1e7a9b3d20
Revises:
Create Date: 2026-10-18 09:12:04.118302

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c1e7a9b3d20'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    # --- accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("matric_number", sa.String(50), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("location", sa.String(20), nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("level", sa.String(50), nullable=True),
        sa.Column("occupation", sa.String(100), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("profile_completion", sa.Integer, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_accounts_status_created", "accounts", ["approval_status", "created_at"],
    )

    # --- account_stats ---
    op.create_table(
        "account_stats",
        sa.Column(
            "account_id", sa.BigInteger,
            sa.ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("comments_posted", sa.Integer, server_default="0"),
        sa.Column("resources_downloaded", sa.Integer, server_default="0"),
        sa.Column("events_attended", sa.Integer, server_default="0"),
    )

    # --- blog_posts ---
    op.create_table(
        "blog_posts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "author_id", sa.BigInteger,
            sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("excerpt", sa.Text, nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("tags", postgresql.JSONB, nullable=True),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("published", sa.Boolean, server_default=sa.false()),
        sa.Column("featured", sa.Boolean, server_default=sa.false()),
        sa.Column("views", sa.Integer, server_default="0"),
        sa.Column("likes", sa.Integer, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_blog_posts_visible", "blog_posts", ["published", "approval_status", "created_at"],
    )
    op.create_index("ix_blog_posts_author", "blog_posts", ["author_id"])

    op.create_table(
        "blog_post_likes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "post_id", sa.Integer,
            sa.ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "account_id", sa.BigInteger,
            sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False,
        ),
        _timestamp("created_at"),
        sa.UniqueConstraint("post_id", "account_id", name="uq_blog_post_likes_post_account"),
    )

    # --- polls ---
    op.create_table(
        "polls",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_by", sa.BigInteger, nullable=False),
        sa.Column("target_levels", postgresql.JSONB, nullable=True),
        _timestamp("created_at"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_polls_status_created", "polls", ["status", "created_at"])

    op.create_table(
        "poll_options",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "poll_id", sa.Integer,
            sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("text", sa.String(500), nullable=False),
        sa.Column("vote_count", sa.Integer, server_default="0"),
        sa.UniqueConstraint("poll_id", "position", name="uq_poll_options_poll_position"),
    )

    op.create_table(
        "poll_votes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "poll_id", sa.Integer,
            sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "account_id", sa.BigInteger,
            sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "option_id", sa.Integer,
            sa.ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=False,
        ),
        _timestamp("created_at"),
        sa.UniqueConstraint("poll_id", "account_id", name="uq_poll_votes_poll_account"),
    )

    # --- admin_log ---
    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.BigInteger, nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100), nullable=True),
        sa.Column("before_snapshot", postgresql.JSONB, nullable=True),
        sa.Column("after_snapshot", postgresql.JSONB, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        _timestamp("timestamp"),
    )
    op.create_index("ix_admin_log_actor_time", "admin_log", ["actor_id", "timestamp"])
    op.create_index(
        "ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"],
    )


def downgrade() -> None:
    op.drop_table("admin_log")
    op.drop_table("poll_votes")
    op.drop_table("poll_options")
    op.drop_table("polls")
    op.drop_table("blog_post_likes")
    op.drop_table("blog_posts")
    op.drop_table("account_stats")
    op.drop_table("accounts")
