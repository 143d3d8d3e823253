"""Booking records and funnel events (SQL-only).

Revision ID: 001_booking_core
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


revision = "001_booking_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "001_booking_core.sql"
    sql = sql_path.read_text(encoding="utf-8")
    conn = op.get_bind()
    conn.exec_driver_sql(sql)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS booking_funnel_events")
    op.execute("DROP TABLE IF EXISTS bookings")
