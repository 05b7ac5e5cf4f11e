"""
Console logging on stderr (stdout is reserved for the report and the final
JSON record) and, when a log directory is given, a daily rotating file.
"""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional


def setup_logging(
    log_path: Optional[str] = None, verbose: bool = False, quiet: bool = False
) -> logging.Logger:
    """
    Configure root logger with stderr console and optional daily rotating file.
    Returns the app logger ('pingcheck').
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    if log_path:
        log_dir = Path(log_path)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = TimedRotatingFileHandler(log_dir / "pingcheck.log", when="midnight", backupCount=30, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    ch = logging.StreamHandler(sys.stderr)
    if verbose:
        ch.setLevel(logging.DEBUG)
    elif quiet:
        ch.setLevel(logging.ERROR)
    else:
        ch.setLevel(logging.INFO)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    logger = logging.getLogger("pingcheck")
    logger.setLevel(logging.DEBUG)
    return logger
