"""Add get_total_unread_count() aggregate function.

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:05:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION get_total_unread_count(p_user_id uuid)
        RETURNS integer
        LANGUAGE sql
        STABLE
        AS $$
            SELECT COALESCE(COUNT(m.id), 0)::integer
            FROM conversation_participants AS cp
            JOIN messages AS m
              ON m.conversation_id = cp.conversation_id
             AND m.created_at > COALESCE(cp.last_read_at, 'epoch'::timestamptz)
             AND m.sender_id IS NOT NULL
             AND m.sender_id <> p_user_id
             AND m.is_deleted = false
            WHERE cp.user_id = p_user_id
              AND cp.left_at IS NULL
        $$;
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS get_total_unread_count(uuid);")
