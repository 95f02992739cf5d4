"""Alembic migration renders the three payment-box tables."""
import io
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parent.parent


def test_upgrade_sql_creates_tables():
    buf = io.StringIO()
    cfg = Config(output_buffer=buf)
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    command.upgrade(cfg, "head", sql=True)
    sql = buf.getvalue()
    for table in ("paymentbox", "paymentboxtransition", "paymentboxsettings"):
        assert f"CREATE TABLE {table} " in sql
    assert "ix_paymentbox_phase" in sql
