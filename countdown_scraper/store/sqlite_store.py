"""SQLite product store."""
import aiosqlite
import logging
from pathlib import Path
from typing import Optional
import orjson

from countdown_scraper.config import config
from countdown_scraper.parse.models import Product, UpsertDecision
from countdown_scraper.store.base import StorageBackend, product_to_row, row_to_product

logger = logging.getLogger(__name__)

COLUMNS = (
    "id",
    "name",
    "category",
    "source_site",
    "size",
    "unit_price",
    "unit_name",
    "original_unit_quantity",
    "current_price",
    "price_history",
    "last_updated",
    "last_checked",
)
JSON_COLUMNS = ("category", "price_history")


class SQLiteStore(StorageBackend):
    """Products table in a local SQLite file, one connection per process."""

    name = "SQLite"

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or config.SQLITE_PATH)
        self._db: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Open the connection and create the products table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute(
            """
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                category TEXT,
                source_site TEXT,
                size TEXT,
                unit_price REAL,
                unit_name TEXT,
                original_unit_quantity INTEGER,
                current_price REAL NOT NULL,
                price_history TEXT,
                last_updated TIMESTAMP,
                last_checked TIMESTAMP
            )
            """
        )
        await self._db.commit()
        logger.info(f"Product database initialized at {self.db_path}")

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("SQLiteStore.initialize() has not been called")
        return self._db

    async def get(self, product_id: str) -> Optional[Product]:
        cursor = await self.db.execute("SELECT * FROM products WHERE id = ?", (product_id,))
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None
        data = dict(row)
        for column in JSON_COLUMNS:
            if data.get(column) is not None:
                data[column] = orjson.loads(data[column])
        return row_to_product(data)

    async def _write(self, decision: UpsertDecision, product: Product) -> None:
        row = product_to_row(product)
        values = [
            orjson.dumps(row[column]).decode() if column in JSON_COLUMNS else row[column]
            for column in COLUMNS
        ]
        placeholders = ", ".join("?" for _ in COLUMNS)
        updates = ", ".join(f"{column} = excluded.{column}" for column in COLUMNS[1:])
        await self.db.execute(
            f"""
            INSERT INTO products ({', '.join(COLUMNS)})
            VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET {updates}
            """,
            values,
        )
        await self.db.commit()

