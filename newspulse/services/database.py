import aiosqlite
from newspulse.config import settings
from newspulse.services.logger import logger
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

INIT_SQL = """
CREATE TABLE IF NOT EXISTS local_cache (
    key TEXT PRIMARY KEY,
    value JSON NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

class Database:
    """Device-local key/value store backing the local cache tier."""

    def __init__(self, db_path: Path = None):
        self.db_path = db_path or settings.DATA_DIR / "newspulse.db"

    async def init(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(INIT_SQL)
            await db.commit()
        logger.info(f"Database initialized at {self.db_path}")

    def get_connection(self):
        return aiosqlite.connect(self.db_path)

    async def get_value(self, key: str) -> Optional[Dict[str, Any]]:
        """Returns the decoded JSON value, or None when absent or corrupt."""
        async with self.get_connection() as conn:
            cursor = await conn.execute("SELECT value FROM local_cache WHERE key = ?", (key,))
            row = await cursor.fetchone()
        if not row:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.error(f"Local cache entry {key} is corrupt: {e}")
            return None

    async def set_value(self, key: str, value: Dict[str, Any]) -> bool:
        async with self.get_connection() as conn:
            try:
                await conn.execute(
                    "INSERT OR REPLACE INTO local_cache (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
                    (key, json.dumps(value, ensure_ascii=False))
                )
                await conn.commit()
                return True
            except Exception as e:
                logger.error(f"Failed to save local cache entry {key}: {e}")
                return False

    async def list_entries(self, prefix: str = "") -> List[Tuple[str, Dict[str, Any]]]:
        async with self.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT key, value FROM local_cache WHERE key LIKE ? ORDER BY key", (f"{prefix}%",)
            )
            rows = await cursor.fetchall()
        return [(key, json.loads(value)) for key, value in rows]

db = Database()
