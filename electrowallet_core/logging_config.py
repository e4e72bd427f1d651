"""
Logging configuration for ElectroWallet.

Two output formats:
  - **human** – coloured, single-line, readable
  - **json**  – newline-delimited JSON for log aggregators

Loggers are named ``electrowallet_<area>``; the prefix is dropped in human
output.  Key material never goes through logging; as a backstop, hex runs
longer than a 64-char transaction id (a hex seed is 128) are masked by
:class:`_SecretMaskFilter` before any handler sees the message.

Usage:
    from electrowallet_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="data/electrowallet.log")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_LOGGER_PREFIX = "electrowallet_"
_LONG_HEX = re.compile(r"\b[0-9a-fA-F]{65,}\b")

# aiohttp logs one line per request at INFO; keep it out of wallet output.
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.server")


class _SecretMaskFilter(logging.Filter):
    """Mask hex runs longer than a transaction id (seeds, concatenated keys)."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        if _LONG_HEX.search(msg):
            record.msg = _LONG_HEX.sub("<redacted>", msg)
            record.args = None
        return True


class _JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):

    COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, colour: bool = True):
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(_LOGGER_PREFIX):
            name = name[len(_LOGGER_PREFIX):]
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        if self.colour:
            colour = self.COLOURS.get(record.levelname, "")
            head = f"{colour}{ts} [{record.levelname:<7}]{self.RESET}"
        else:
            head = f"{ts} [{record.levelname:<7}]"
        line = f"{head} {name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    fmt : str
        ``"human"`` or ``"json"``.  Colour is used only when stderr is a TTY.
    log_file : str, optional
        Also append JSON lines to this file.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    mask = _SecretMaskFilter()

    console = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=sys.stderr.isatty()))
    console.addFilter(mask)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        fh.addFilter(mask)
        root.addHandler(fh)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
