import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Any

from app.core.timeutil import iso_z, utc_now

logger = logging.getLogger(__name__)


class BestEffortSink:
    """Base for persistence targets whose failures never reach the caller.

    ``write`` returns True when the entry was stored and False otherwise.
    Failures are reported on the diagnostic log and swallowed, so callers
    on a success path can ignore the result.
    """

    name = "sink"

    async def write(self, entry: dict[str, Any]) -> bool:
        try:
            await self._write(entry)
            return True
        except Exception as e:
            logger.error(
                f"Best-effort write to {self.name} failed: {e}",
                extra={"data": {"sink": self.name, "error": str(e)}},
            )
            return False

    async def _write(self, entry: dict[str, Any]) -> None:
        raise NotImplementedError


class DataAuditLog(BestEffortSink):
    name = "data-audit"

    def __init__(self, log_dir: Path):
        self.directory = Path(log_dir) / "data"
        self._lock = threading.Lock()

    def path_for(self, day: str) -> Path:
        return self.directory / f"data-{day}.json"

    async def append(self, data: Any, source: str, **extra: Any) -> bool:
        entry = {"timestamp": iso_z(utc_now()), "source": source, "data": data}
        entry.update(extra)
        return await self.write(entry)

    async def _write(self, entry: dict[str, Any]) -> None:
        line = json.dumps(entry, default=str) + "\n"
        path = self.path_for(entry["timestamp"][:10])
        await asyncio.to_thread(self._append_line, path, line)
        logger.debug(f"Data logged to file: {path.name}")

    def _append_line(self, path: Path, line: str) -> None:
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(line)
