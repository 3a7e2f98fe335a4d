"""Generation store schema.

Creates ``generation_cache`` (fingerprint to serialized result) and the
append-only ``generation_history`` table with its lookup indexes.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "generation_cache",
        sa.Column("fingerprint", sa.String(64), primary_key=True),
        sa.Column("result_json", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "generation_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("generation_id", sa.String(36), nullable=False, unique=True),
        sa.Column("request_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("project_id", sa.String(255), nullable=True),
        sa.Column("fingerprint", sa.String(64), nullable=True),
        sa.Column("mode", sa.String(32), nullable=False),
        sa.Column("target", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("error_code", sa.String(64), nullable=True),
        sa.Column("quality_score", sa.Integer(), nullable=True),
        sa.Column("validated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("total_components", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_lines", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("generation_time_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("architecture_style", sa.String(128), nullable=True),
        sa.Column("component_names", sa.JSON(), nullable=False),
        sa.Column("domain", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_generation_history_user_id", "generation_history", ["user_id"])
    op.create_index("ix_generation_history_project_id", "generation_history", ["project_id"])
    op.create_index("ix_generation_history_status", "generation_history", ["status"])


def downgrade() -> None:
    op.drop_index("ix_generation_history_status", table_name="generation_history")
    op.drop_index("ix_generation_history_project_id", table_name="generation_history")
    op.drop_index("ix_generation_history_user_id", table_name="generation_history")
    op.drop_table("generation_history")
    op.drop_table("generation_cache")
