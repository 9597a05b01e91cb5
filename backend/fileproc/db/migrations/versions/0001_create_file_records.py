"""create file_records

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "file_records",
        sa.Column("file_id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("processing_type", sa.String(length=50), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("original_name", sa.String(length=500), nullable=False),
        sa.Column("stored_file_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("processed_artifact_ref", sa.String(length=1000), nullable=True),
        sa.Column("processed_mime_type", sa.String(length=100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "metadata",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_file_records_user_id", "file_records", ["user_id"])
    op.create_index("ix_file_records_status", "file_records", ["status"])
    op.create_index("ix_file_records_processing_type", "file_records", ["processing_type"])
    op.create_index("ix_file_records_status_created_at", "file_records", ["status", "created_at"])
    op.create_index("ix_file_records_user_id_status", "file_records", ["user_id", "status"])
    op.create_index(
        "ix_file_records_processing_type_status", "file_records", ["processing_type", "status"]
    )


def downgrade() -> None:
    op.drop_index("ix_file_records_processing_type_status", table_name="file_records")
    op.drop_index("ix_file_records_user_id_status", table_name="file_records")
    op.drop_index("ix_file_records_status_created_at", table_name="file_records")
    op.drop_index("ix_file_records_processing_type", table_name="file_records")
    op.drop_index("ix_file_records_status", table_name="file_records")
    op.drop_index("ix_file_records_user_id", table_name="file_records")
    op.drop_table("file_records")
