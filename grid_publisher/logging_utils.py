"""Console and audit logging for the grid publisher."""

from __future__ import annotations

import json
import logging
from logging import Logger
from pathlib import Path
from typing import Any, Dict, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def configure_logging(log_file: Optional[str] = None, *, level: Union[int, str] = logging.INFO) -> Logger:
    """Route ``grid_publisher`` logs to stderr and, with ``log_file``, to a JSON-lines file.

    ``level`` may be a number or a name such as ``"debug"``. Calling this again
    replaces the handlers installed by the previous call.
    """

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level {level!r}")
        level = resolved

    logger = logging.getLogger("grid_publisher")
    logger.setLevel(level)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    console = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    console.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        audit = logging.FileHandler(log_file)
        audit.setFormatter(StructuredJsonFormatter())
        logger.addHandler(audit)

    logger.debug("Logging initialised", extra={"level": logging.getLevelName(level), "audit_file": log_file})
    return logger


class StructuredJsonFormatter(logging.Formatter):
    """Formatter that emits one JSON object per record, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        extra = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}
        if extra:
            base["data"] = extra
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, default=str)


__all__ = ["StructuredJsonFormatter", "configure_logging"]
