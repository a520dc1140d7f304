"""
Diagnostic logging for the CLC cold wallet.

Command results go to stdout with ``print``; logging is only the
diagnostic channel on stderr (and optionally a file).  Two console
formats:
  - **human** – one line per record, coloured on a terminal
  - **json**  – newline-delimited JSON

Every record is tagged with the command being run and has anything that
looks like a private key masked before it is formatted.

Usage:
    from clc_cold.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", command="transact")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# 64 hex digits on their own: the shape of a secp256k1 secret
_SECRET_RE = re.compile(r"(?<![0-9a-fA-F])[0-9a-fA-F]{64}(?![0-9a-fA-F])")
MASK = "<secret>"


class _RedactSecrets(logging.Filter):
    """Replace private-key-shaped hex in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        masked = _SECRET_RE.sub(MASK, msg)
        if masked != msg:
            record.msg, record.args = masked, None
        return True


class _CommandTag(logging.Filter):
    """Attach ``record.command`` so formatters can show it."""

    def __init__(self, command: str):
        super().__init__()
        self.command = command

    def filter(self, record: logging.LogRecord) -> bool:
        record.command = self.command
        return True


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "command": getattr(record, "command", None),
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _HumanFormatter(logging.Formatter):
    """``clc-cold[transact] WARNING clc_cold.ledger: message``"""

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
        level = record.levelname
        if self.colour and level in self.COLOURS:
            level = f"{self.COLOURS[level]}{level}{self.RESET}"
        command = getattr(record, "command", None)
        prefix = f"clc-cold[{command}]" if command else "clc-cold"
        line = f"{prefix} {level} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "WARNING",
    fmt: str = "human",
    log_file: Optional[str] = None,
    command: Optional[str] = None,
) -> None:
    """
    Configure the root logger for one CLI invocation.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.  Unknown names
        fall back to WARNING.
    fmt : str
        ``"human"`` or ``"json"`` for the stderr handler.
    log_file : str, optional
        Also append records to this file, always as JSON.
    command : str, optional
        Name of the wallet command, stamped on every record.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    root.handlers.clear()

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=sys.stderr.isatty()))
    handlers.append(console)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        handlers.append(fh)

    for handler in handlers:
        handler.addFilter(_RedactSecrets())
        if command:
            handler.addFilter(_CommandTag(command))
        root.addHandler(handler)

    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(max(root.level, logging.INFO))
