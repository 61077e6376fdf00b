"""initial schema: users, articles, comments, pending_updates, revoked_tokens

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

_LIST_COLUMNS = (
    "comment_list",
    "collected_article_list",
    "published_article_list",
    "loved_article_list",
    "follower_list",
    "following_list",
    "read_history_list",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("avatar", sa.String(500), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("password", sa.String(255), nullable=True),
        sa.Column("gender", sa.Enum("MALE", "FEMALE", name="gender"), nullable=True),
        *(sa.Column(name, sa.Text(), nullable=True) for name in _LIST_COLUMNS),
    )
    op.create_index("ix_users_name", "users", ["name"])
    op.create_index("ix_users_phone", "users", ["phone"])

    op.create_table(
        "articles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("vote_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("selected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_articles_author_id", "articles", ["author_id"])
    op.create_index("ix_articles_create_time", "articles", ["create_time"])
    op.create_index("ix_articles_author_id_create_time", "articles", ["author_id", "create_time"])
    op.create_index("ix_articles_selected_create_time", "articles", ["selected", "create_time"])

    op.create_table(
        "comments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("article_id", sa.String(36), sa.ForeignKey("articles.id"), nullable=False),
        sa.Column("vote_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_author_id", "comments", ["author_id"])
    op.create_index("ix_comments_article_id", "comments", ["article_id"])

    op.create_table(
        "pending_updates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("creator_id", sa.String(36), nullable=False),
        sa.Column("is_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_pending_updates_user_id_create_time", "pending_updates", ["user_id", "create_time"]
    )

    op.create_table(
        "revoked_tokens",
        sa.Column("token", sa.String(1024), primary_key=True),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("revoked_tokens")
    op.drop_index("ix_pending_updates_user_id_create_time", table_name="pending_updates")
    op.drop_table("pending_updates")
    op.drop_table("comments")
    op.drop_table("articles")
    op.drop_table("users")
    sa.Enum(name="gender").drop(op.get_bind(), checkfirst=True)
