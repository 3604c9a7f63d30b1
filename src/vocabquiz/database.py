import os
import sqlite3

from .config import settings


def get_db_connection():
    """Opens the log database configured in settings."""
    db_path = os.path.join(settings.DB_DIR, settings.DB_FILE)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def create_log_table():
    conn = get_db_connection()
    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                level TEXT,
                logger TEXT,
                message TEXT
            );
        """
        )
    conn.close()


def init_db():
    os.makedirs(settings.DB_DIR, exist_ok=True)
    create_log_table()


def recent_logs(limit: int = 50):
    conn = get_db_connection()
    try:
        rows = conn.execute(
            "SELECT timestamp, level, logger, message FROM logs "
            "ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    finally:
        conn.close()
    return [dict(row) for row in rows]
