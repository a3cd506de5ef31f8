"""
Startup diagnostics — runs once when the Flask app starts.

Checks critical dependencies and logs a summary banner.
"""

import logging
import sys

import redis
from flask import Flask
from sqlalchemy import inspect as sa_inspect

from taskhub.models import db

logger = logging.getLogger(__name__)


def run_startup_diagnostics(app: Flask):
    """Run diagnostic checks during app startup (inside app context)."""
    if app.config.get("TESTING"):
        return  # skip during tests for speed

    issues: list[str] = []

    with app.app_context():
        py = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        # ── Database connectivity ────────────────────────────────────
        db_status = "ok"
        db_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db_type = "PostgreSQL" if "postgresql" in db_uri else "SQLite" if "sqlite" in db_uri else "unknown"
        try:
            db.session.execute(db.text("SELECT 1"))
        except Exception as exc:
            db_status = "FAILED"
            issues.append(f"Database unreachable: {exc}")

        # ── Table count ──────────────────────────────────────────────
        try:
            table_count = len(sa_inspect(db.engine).get_table_names())
            if table_count == 0:
                issues.append("No tables found — run 'flask db upgrade'")
        except Exception as exc:
            table_count = "?"
            issues.append(f"Could not inspect tables: {exc}")

        # ── Redis (rate limiter storage / socket message queue) ─────
        redis_status = "not configured"
        redis_url = app.config.get("REDIS_URL") or app.config.get("SOCKETIO_MESSAGE_QUEUE")
        if redis_url and redis_url.startswith("redis"):
            try:
                redis.from_url(redis_url, socket_timeout=2).ping()
                redis_status = "ok"
            except redis.RedisError:
                redis_status = "unreachable"
                issues.append("Redis unreachable — rate limiter and socket fan-out may not work")

        banner = f"""
╔══════════════════════════════════════════════════════════════╗
║  TaskHub — Startup Diagnostics                               ║
╠══════════════════════════════════════════════════════════════╣
║  Python      : {py:<46s}║
║  Debug       : {str(app.debug):<46s}║
║  Database    : {f'{db_type} ({db_status})':<46s}║
║  Tables      : {str(table_count):<46s}║
║  Redis       : {redis_status:<46s}║
║  Socket MQ   : {'configured' if app.config.get('SOCKETIO_MESSAGE_QUEUE') else 'in-process':<46s}║
╚══════════════════════════════════════════════════════════════╝"""
        logger.info(banner)

        if issues:
            logger.warning("Startup issues detected:")
            for issue in issues:
                logger.warning("  ⚠ %s", issue)
        else:
            logger.info("✅ All startup checks passed")
