import logging
from datetime import datetime, timezone

LOG_FORMAT = "[READINESS] %(asctime)s %(levelname)s %(name)s: %(message)s"


class _UTCFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(getattr(h, "_readiness", False) for h in root.handlers):
        root.setLevel(level.upper())
        return
    handler = logging.StreamHandler()
    handler.setFormatter(_UTCFormatter(LOG_FORMAT))
    handler._readiness = True
    root.addHandler(handler)
    root.setLevel(level.upper())
