"""Create client session store table."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "3b7e1c9a0d42"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create key-value storage for the signed-in session."""
    op.create_table(
        "client_session_store",
        sa.Column("key", sa.String(length=128), primary_key=True),
        sa.Column("value_text", sa.Text(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )


def downgrade() -> None:
    """Remove client session storage."""
    op.drop_table("client_session_store")
