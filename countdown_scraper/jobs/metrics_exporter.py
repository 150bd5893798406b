"""Metrics exporter for observability."""
import time
from pathlib import Path
from typing import Dict, Optional
import aiofiles
import orjson

from countdown_scraper.config import DATA_DIR

METRICS_FILE = DATA_DIR / "metrics.jsonl"


class MetricsExporter:
    """Appends one JSON line per scraped page."""

    def __init__(self, run_id: str, metrics_file: Optional[Path] = None):
        self.run_id = run_id
        self.metrics_file = metrics_file or METRICS_FILE

    async def export_page(
        self,
        url: str,
        page_valid: bool,
        listings: int,
        counters: Dict[str, int],
        elapsed: float,
    ) -> None:
        """Export one page's counters to the JSONL file."""
        metrics = {
            "ts": time.time(),
            "run_id": self.run_id,
            "url": url,
            "page_valid": page_valid,
            "listings": listings,
            **counters,
            "elapsed": round(elapsed, 2),
        }
        self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.metrics_file, "ab") as f:
            await f.write(orjson.dumps(metrics) + b"\n")
