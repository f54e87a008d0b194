"""Add meetings table

Revision ID: 9a3f5d18c6e2
Revises: 4e1b7c2a9d05
Create Date: 2024-09-29
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9a3f5d18c6e2"
down_revision: Union[str, Sequence[str], None] = "4e1b7c2a9d05"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "meetings",
        sa.Column("meeting_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("zoom_id", sa.String(), nullable=False),
        sa.Column("zoom_uuid", sa.String(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("meeting_id"),
    )
    op.create_index("ix_meetings_zoom_uuid", "meetings", ["zoom_uuid"], unique=True)
    op.create_index(op.f("ix_meetings_user_id"), "meetings", ["user_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_meetings_user_id"), table_name="meetings")
    op.drop_index("ix_meetings_zoom_uuid", table_name="meetings")
    op.drop_table("meetings")
