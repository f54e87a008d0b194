"""Add meeting length limits and meeting topic

Revision ID: d27c8e41b3fa
Revises: 9a3f5d18c6e2
Create Date: 2024-10-06
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "d27c8e41b3fa"
down_revision: Union[str, Sequence[str], None] = "9a3f5d18c6e2"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("users", sa.Column("default_meeting_length_minutes", sa.Integer(), nullable=True))
    op.add_column("meetings", sa.Column("max_meeting_length_minutes", sa.Integer(), nullable=True))
    op.add_column("meetings", sa.Column("topic", sa.String(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table("meetings") as batch_op:
        batch_op.drop_column("topic")
        batch_op.drop_column("max_meeting_length_minutes")
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("default_meeting_length_minutes")
