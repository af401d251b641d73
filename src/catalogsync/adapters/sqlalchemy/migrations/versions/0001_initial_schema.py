"""Initial catalog replica schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "repository",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("registry", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_repository"),
        sa.UniqueConstraint("external_id", name="uq_repository_external_id"),
    )
    op.create_table(
        "image",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("digest", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_image"),
        sa.UniqueConstraint("digest", name="uq_image_digest"),
    )
    op.create_table(
        "cve",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_cve"),
        sa.UniqueConstraint("name", name="uq_cve_name"),
    )
    op.create_table(
        "repository_image",
        sa.Column("repository_id", sa.Integer(), nullable=False),
        sa.Column("image_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["repository_id"],
            ["repository.id"],
            name="fk_repository_image_repository_id_repository",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["image_id"],
            ["image.id"],
            name="fk_repository_image_image_id_image",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("repository_id", "image_id", name="pk_repository_image"),
    )
    op.create_index(
        "ix_repository_image_image_id", "repository_image", ["image_id"], unique=False
    )
    op.create_table(
        "image_cve",
        sa.Column("image_id", sa.Integer(), nullable=False),
        sa.Column("cve_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["image_id"],
            ["image.id"],
            name="fk_image_cve_image_id_image",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["cve_id"],
            ["cve.id"],
            name="fk_image_cve_cve_id_cve",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("image_id", "cve_id", name="pk_image_cve"),
    )
    op.create_index("ix_image_cve_cve_id", "image_cve", ["cve_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_image_cve_cve_id", table_name="image_cve")
    op.drop_table("image_cve")
    op.drop_index("ix_repository_image_image_id", table_name="repository_image")
    op.drop_table("repository_image")
    op.drop_table("cve")
    op.drop_table("image")
    op.drop_table("repository")
