from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"
RUN_LOG_NAME = "run.log"


def _level(name: str) -> int:
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else logging.INFO


def _handlers(run_dir: Optional[Path]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if run_dir is not None:
        run_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(run_dir / RUN_LOG_NAME, encoding="utf-8")
        )
    return handlers


def setup_logging(run_dir: Optional[Path] = None, level: str = "INFO") -> None:
    """Send compositing logs to stderr and, for batch runs, to run_dir/run.log.

    Calling it again replaces the previous handlers, so a second batch run in
    the same process does not log every line twice.
    """
    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    lvl = _level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in _handlers(run_dir):
        handler.setLevel(lvl)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(lvl)
