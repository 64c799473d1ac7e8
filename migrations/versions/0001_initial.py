"""Initial schema: video tasks and scenes

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Video tasks table
    op.create_table(
        "video_tasks",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("user_input", sa.Text(), nullable=False),
        sa.Column("script", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("output_url", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_video_tasks_user_id", "video_tasks", ["user_id"])
    op.create_index("ix_video_tasks_status", "video_tasks", ["status"])
    op.create_index("ix_video_tasks_created_at", "video_tasks", ["created_at"])

    # Scenes table
    op.create_table(
        "scenes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task_id", sa.String(36), nullable=False),
        sa.Column("scene_number", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("visual_prompt", sa.Text(), nullable=False, server_default=""),
        sa.Column("duration_seconds", sa.Float(), nullable=False, server_default="5"),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["video_tasks.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("task_id", "scene_number", name="uq_scene_task_number"),
    )
    op.create_index("ix_scenes_task_id", "scenes", ["task_id"])


def downgrade() -> None:
    op.drop_index("ix_scenes_task_id", table_name="scenes")
    op.drop_table("scenes")
    op.drop_index("ix_video_tasks_created_at", table_name="video_tasks")
    op.drop_index("ix_video_tasks_status", table_name="video_tasks")
    op.drop_index("ix_video_tasks_user_id", table_name="video_tasks")
    op.drop_table("video_tasks")
