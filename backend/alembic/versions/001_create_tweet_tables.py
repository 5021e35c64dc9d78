"""Create tweets, likes and bookmarks tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `tweets` table (root and derived tweets in one table,
       linked through the self-referencing tweet_id) and the `likes` and
       `bookmarks` tables that hang off it.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "tweets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content", sa.Text(), nullable=True),

        # Parent linkage, written once at creation
        sa.Column("tweet_id", sa.Integer(), nullable=True),
        sa.Column("is_retweet", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_quote_tweet", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_reply", sa.Boolean(), server_default=sa.text("false"), nullable=False),

        # Attachment metadata; bytes live under STORAGE_ROOT/media_path
        sa.Column("media_path", sa.String(255), nullable=True),
        sa.Column("media_filename", sa.String(255), nullable=True),
        sa.Column("media_content_type", sa.String(100), nullable=True),
        sa.Column("media_byte_size", sa.Integer(), nullable=True),

        *_timestamps(),

        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tweet_id"], ["tweets.id"], name="fk_tweets_tweet_id"),
    )
    op.create_index("ix_tweets_tweet_id", "tweets", ["tweet_id"])

    for table in ("likes", "bookmarks"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("tweet_id", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["tweet_id"], ["tweets.id"], name=f"fk_{table}_tweet_id"),
        )
        op.create_index(f"ix_{table}_tweet_id", table, ["tweet_id"])


def downgrade() -> None:
    for table in ("bookmarks", "likes"):
        op.drop_index(f"ix_{table}_tweet_id", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_tweets_tweet_id", table_name="tweets")
    op.drop_table("tweets")
