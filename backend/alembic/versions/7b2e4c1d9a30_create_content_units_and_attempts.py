"""Create content units and attempts tables

Revision ID: 7b2e4c1d9a30
Revises:
Create Date: 2026-01-12 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "7b2e4c1d9a30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "content_units",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("kind", sa.Enum("EXAM", "PRACTICE", name="content_kind"), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("kind", "number", name="content_units_kind_number_key"),
    )

    op.create_table(
        "attempts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("content_unit_id", sa.Uuid(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("correct_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(
            ["content_unit_id"],
            ["content_units.id"],
            name="attempts_content_unit_id_fkey",
            ondelete="RESTRICT",
        ),
    )
    op.create_index(
        "attempts_user_id_finished_at_idx", "attempts", ["user_id", "finished_at"]
    )


def downgrade() -> None:
    op.drop_index("attempts_user_id_finished_at_idx", table_name="attempts")
    op.drop_table("attempts")
    op.drop_table("content_units")
    sa.Enum(name="content_kind").drop(op.get_bind(), checkfirst=True)
