"""Add invisible_urls for zero-width short links

Revision ID: 0002
Revises: 0001
Create Date: 2026-09-14

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "invisible_urls",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("invis", sa.String(), nullable=False),
        sa.Column(
            "url_id",
            sa.String(),
            sa.ForeignKey("urls.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_invisible_urls_invis", "invisible_urls", ["invis"], unique=True)
    op.create_index("ix_invisible_urls_url_id", "invisible_urls", ["url_id"])


def downgrade() -> None:
    op.drop_index("ix_invisible_urls_url_id", table_name="invisible_urls")
    op.drop_index("ix_invisible_urls_invis", table_name="invisible_urls")
    op.drop_table("invisible_urls")
