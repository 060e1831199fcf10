"""Console logging and JSONL step logs."""

import json
import logging
from typing import Optional, Dict, Any
from pathlib import Path
from datetime import datetime, timezone

LOG_FORMAT = "%(message)s"

def setup_logging(
    log_file: Optional[Path] = None,
    verbose: bool = False,
) -> None:
    """Set up logging configuration.

    Args:
        log_file: Optional path that also receives every log record
        verbose: Whether to enable debug logging, including collector lifecycle
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("liststream").setLevel(level)

    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)

def log_step(
    step: str,
    data: Dict[str, Any],
    log_file: Optional[Path] = None,
) -> None:
    """Record one command step as a JSON line.

    Args:
        step: Step name, e.g. "collect" or "tee"
        data: Step details; non-JSON values are written with str()
        log_file: Optional path to append the line to instead of logging it
    """
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "step": step,
        **data,
    }
    line = json.dumps(entry, default=str)

    if log_file:
        with open(log_file, "a") as f:
            f.write(line + "\n")
    else:
        logging.getLogger("liststream").info(line)
