"""survey catalog + users

Revision ID: 20261017090000
Revises:
Create Date: 2026-10-17

Per-survey partition tables (surveys_flags_<asset_id>, enumerators_stats_<asset_id>)
are created by the ingestion pipeline and are not managed here.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017090000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "surveys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("asset_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("country_id", sa.String(32), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
    )
    op.create_index("ix_surveys_asset_id", "surveys", ["asset_id"], unique=True)
    op.create_index("ix_surveys_country_id", "surveys", ["country_id"], unique=False)
    op.create_index("ix_surveys_active", "surveys", ["active"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(120), nullable=False, server_default=""),
        sa.Column("username", sa.String(80), nullable=False),
        sa.Column("role", sa.Enum("ADMIN", "USER", name="role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("surveys_json", sa.Text(), nullable=True),
        sa.Column("enumerators_json", sa.Text(), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_is_active", "users", ["is_active"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_users_is_active", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_surveys_active", table_name="surveys")
    op.drop_index("ix_surveys_country_id", table_name="surveys")
    op.drop_index("ix_surveys_asset_id", table_name="surveys")
    op.drop_table("surveys")
