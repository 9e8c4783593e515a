"""sync jobs queue table

Revision ID: 0002_sync_jobs_queue
Revises: 0001_bets_rollup
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_sync_jobs_queue"
down_revision = "0001_bets_rollup"
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("sync_jobs"):
        op.create_table(
            "sync_jobs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("job_id", sa.String(length=64), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("source", sa.String(length=16), nullable=False, server_default="manual"),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("channel", sa.String(length=32), nullable=True),
            sa.Column("estimated_records", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("processed_records", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("skipped_records", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("execution_time_seconds", sa.Float(), nullable=True),
            sa.Column("actor", sa.String(length=128), nullable=False, server_default="system"),
            sa.Column("max_retries", sa.Integer(), nullable=False, server_default="3"),
            sa.Column("retries", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("priority", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("locked_by", sa.String(length=128), nullable=True),
            sa.Column("locked_at", sa.DateTime(), nullable=True),
            sa.Column("error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("started_at", sa.DateTime(), nullable=True),
            sa.Column("finished_at", sa.DateTime(), nullable=True),
        )

    op.create_index("ix_sync_jobs_id", "sync_jobs", ["id"])
    op.create_index("ix_sync_jobs_job_id", "sync_jobs", ["job_id"], unique=True)
    op.create_index("ix_sync_jobs_status", "sync_jobs", ["status"])
    op.create_index("ix_sync_jobs_source", "sync_jobs", ["source"])
    op.create_index("ix_sync_jobs_priority", "sync_jobs", ["priority"])
    op.create_index("ix_sync_jobs_created_at", "sync_jobs", ["created_at"])
    op.create_index("ix_sync_jobs_status_priority_created", "sync_jobs", ["status", "priority", "created_at"])
    op.create_index("ix_sync_jobs_source_status", "sync_jobs", ["source", "status"])


def downgrade() -> None:
    op.drop_index("ix_sync_jobs_source_status", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_status_priority_created", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_created_at", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_priority", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_source", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_status", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_job_id", table_name="sync_jobs")
    op.drop_index("ix_sync_jobs_id", table_name="sync_jobs")
    op.drop_table("sync_jobs")
