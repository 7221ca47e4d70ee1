"""Create content_submissions table

Revision ID: a3f1c9e07b42
Revises:
Create Date: 2026-10-19 10:12:48.301557

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a3f1c9e07b42"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "content_submissions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("original_url", sa.String(length=2048), nullable=False),
        sa.Column("original_title", sa.String(length=1024), nullable=False),
        sa.Column("word_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("generated_content", sa.JSON(), nullable=True),
        sa.Column(
            "status", sa.String(length=20), nullable=False, server_default="processing"
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_content_submissions"),
    )
    op.create_index(
        "idx_submission_user_created",
        "content_submissions",
        ["user_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "idx_submission_status", "content_submissions", ["status"], unique=False
    )


def downgrade() -> None:
    op.drop_index("idx_submission_status", table_name="content_submissions")
    op.drop_index("idx_submission_user_created", table_name="content_submissions")
    op.drop_table("content_submissions")
