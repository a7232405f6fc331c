import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from app.config.settings import Settings
from app.core.timeutil import iso_z

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

_exception_formatter = logging.Formatter()


class DailyJsonFileHandler(logging.Handler):
    """Append each log record as one JSON line to a file named after its UTC day.

    Records carry ``{timestamp, level, logger, message}`` and, when the
    caller passes ``extra={"data": ...}``, a ``data`` member. Write errors
    go through ``handleError`` and never reach the caller.
    """

    def __init__(self, directory: Path, prefix: str = "mqtt-logs"):
        super().__init__()
        self.directory = Path(directory)
        self.prefix = prefix

    def path_for(self, moment: datetime) -> Path:
        return self.directory / f"{self.prefix}-{moment:%Y-%m-%d}.json"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            created = datetime.fromtimestamp(record.created, tz=timezone.utc)
            entry = {
                "timestamp": iso_z(created),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            data = getattr(record, "data", None)
            if data is not None:
                entry["data"] = data
            if record.exc_info:
                entry["exception"] = _exception_formatter.formatException(
                    record.exc_info
                )

            line = json.dumps(entry, default=str) + "\n"
            self.directory.mkdir(parents=True, exist_ok=True)
            with self.path_for(created).open("a", encoding="utf-8") as fh:
                fh.write(line)
        except Exception:
            self.handleError(record)


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())

    for handler in list(root.handlers):
        if getattr(handler, "_wattmon", False):
            root.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    events = DailyJsonFileHandler(Path(settings.log_dir))

    for handler in (console, events):
        handler._wattmon = True
        root.addHandler(handler)
