"""Logging setup for the setup wizard process.

Logs go to a rotating file so the interactive prompts stay clean; console
output is opt-in. A filter masks password values that end up in log messages
(engine error details can echo request payloads).
"""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Any

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_PASSWORD_RE = re.compile(
    r"""(["']?password["']?\s*[:=]\s*)("[^"]*"|'[^']*'|[^"'\s,}]+)""", re.IGNORECASE
)


def _mask(match: re.Match) -> str:
    value = match.group(2)
    quote = value[0] if value[0] in "\"'" else ""
    return f"{match.group(1)}{quote}***{quote}"


class RedactPasswordsFilter(logging.Filter):
    """Replace password values in formatted messages with ***."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _PASSWORD_RE.sub(_mask, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RedactPasswordsFilter())
    return handler


def setup_logging(project_root: Path, settings: dict[str, Any]) -> Path:
    """Configure the root logger from settings["logging"]. Returns the log file path."""
    cfg = settings.get("logging", {})
    level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    log_path = project_root / cfg.get("file", "logs/app.log")
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=int(cfg.get("max_bytes", 10 * 1024 * 1024)),
        backupCount=int(cfg.get("backup_count", 3)),
        encoding="utf-8",
    )

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)
    root.addHandler(_handler(file_handler, level, formatter))
    if cfg.get("log_to_console", False):
        root.addHandler(_handler(logging.StreamHandler(), level, formatter))

    # httpx logs every request at INFO; keep it out of the wizard log unless debugging
    if level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_path
