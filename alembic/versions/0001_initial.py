"""Create users, images and urls tables

Revision ID: 0001
Revises:
Create Date: 2026-09-02

"""
import secrets
import string
from typing import Sequence, Union

from alembic import op
from passlib.context import CryptContext
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Frozen copies of the app's hashing and token format at the time of writing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
TOKEN_ALPHABET = string.ascii_letters + string.digits


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="user"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_token", "users", ["token"], unique=True)

    # First login, the password is meant to be changed right away
    users = sa.table(
        "users",
        sa.column("username", sa.String),
        sa.column("password", sa.String),
        sa.column("token", sa.String),
        sa.column("role", sa.String),
    )
    op.bulk_insert(
        users,
        [
            {
                "username": "administrator",
                "password": pwd_context.hash("password"),
                "token": "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(32)),
                "role": "admin",
            }
        ],
    )

    op.create_table(
        "images",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("file", sa.String(), nullable=False, unique=True),
        sa.Column("mimetype", sa.String(), nullable=False, server_default="image/png"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_images_user_id", "images", ["user_id"])

    op.create_table(
        "urls",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("vanity", sa.String(), nullable=True, unique=True),
        sa.Column("destination", sa.Text(), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_views", sa.Integer(), nullable=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_urls_user_id", "urls", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_urls_user_id", table_name="urls")
    op.drop_table("urls")
    op.drop_index("ix_images_user_id", table_name="images")
    op.drop_table("images")
    op.drop_index("ix_users_token", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
