"""survey alert codes

Revision ID: 20261017100000
Revises: 20261017090000
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017100000"
down_revision = "20261017090000"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("surveys", sa.Column("alert_codes_json", sa.Text(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("surveys") as batch:
        batch.drop_column("alert_codes_json")
